import unittest
from datetime import datetime
from io import BytesIO

import pandas as pd

from finboard.clients.spreadsheet_reader import read_grid
from finboard.core.exceptions import UnreadableFileError
from finboard.services.import_service import stage_grid

CSV_EXPORT = (
    "Account Summary\n"
    "Generated,01/31/2024\n"
    "\n"
    "Transaction Date,Activity Type,Description,Symbol,Quantity,Price ($),Amount ($)\n"
    "01/15/2024,Bought,\"APPLE INC, COMMON\",AAPL,10,150.00,\"-1,500.00\"\n"
    "01/20/2024,Dividend,MICROSOFT CORP,MSFT,,,12.50\n"
)


class SpreadsheetReaderTests(unittest.TestCase):
    def test_csv_with_preamble(self):
        grid = read_grid("export.csv", CSV_EXPORT.encode("utf-8"))

        self.assertEqual(grid[0][0], "Account Summary")
        self.assertIsNone(grid[0][1])
        self.assertEqual(len(grid[3]), 7)
        self.assertEqual(grid[4][2], "APPLE INC, COMMON")
        self.assertIsNone(grid[5][4])

        preview = stage_grid(grid, {"bought": "Buy", "dividend": "Dividend"})
        self.assertEqual([t.symbol for t in preview.transactions], ["AAPL", "MSFT"])
        self.assertEqual(preview.transactions[0].total, 1500)
        self.assertEqual(preview.transactions[0].row, 5)

    def test_csv_with_byte_order_mark(self):
        grid = read_grid("export.CSV", "\ufeffSymbol,Action\nAAPL,Bought\n".encode("utf-8"))
        self.assertEqual(grid[0], ["Symbol", "Action"])

    def test_xlsx_keeps_date_cells(self):
        frame = pd.DataFrame([
            ["Trade Date", "Action", "Symbol", "Quantity", "Price", "Amount"],
            [datetime(2024, 3, 5), "Sold", "TSLA", 2, 180.5, 361],
        ])
        buffer = BytesIO()
        frame.to_excel(buffer, header=False, index=False)

        grid = read_grid("export.xlsx", buffer.getvalue())
        preview = stage_grid(grid, {"sold": "Sell"})

        sell = preview.transactions[0]
        self.assertEqual((sell.date, sell.shares, sell.price, sell.total), ("2024-03-05", 2, 180.5, 361))

    def test_unsupported_extension(self):
        with self.assertRaises(UnreadableFileError):
            read_grid("export.pdf", b"%PDF-1.4")

    def test_empty_upload(self):
        with self.assertRaises(UnreadableFileError):
            read_grid("export.csv", b"")

    def test_corrupt_workbook(self):
        with self.assertRaises(UnreadableFileError):
            read_grid("export.xlsx", b"definitely not a zip archive")


if __name__ == "__main__":
    unittest.main()
