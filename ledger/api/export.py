"""CSV rendering for the transaction export."""

import csv
from io import StringIO
from typing import Iterable

from ledger.models.ledger import Transaction


CSV_HEADER = ["ID", "Description", "Amount", "Type", "Date", "Category"]


def transaction_to_row(transaction: Transaction) -> list[str]:
    return [
        str(transaction.id),
        transaction.description or "",
        f"{transaction.amount:.2f}",
        transaction.type.value,
        transaction.date.isoformat(),
        transaction.category_name,
    ]


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADER)
    for transaction in transactions:
        writer.writerow(transaction_to_row(transaction))
    return output.getvalue()
