"""
Test file for the function-style DBF interface.
"""

import unittest
from dbf_module import (
    DBFColumn, DBFTable, DBF_LANG_US,
    dbf_file_open, dbf_file_close, dbf_file_get_actual_row_count,
    dbf_file_read_row, dbf_file_iter_rows, dbf_file_get_fields,
    dbf_file_get_date, dbf_file_get_language_driver, build_field_spec
)
from dbf_fixtures import build_dbf, build_dbt3, memo_pointer


class TestDBFModule(unittest.TestCase):
    """Test cases for the dbf_file_* functions."""

    def setUp(self):
        """Set up a table with a memo column and one deleted row."""
        fields = [("ID", "N", 5, 0), ("PRICE", "N", 8, 2), ("NOTES", "M", 10, 0)]
        memo_data, blocks = build_dbt3(["cheap", "dear"])
        rows = [
            ["1", "    1.25", memo_pointer(blocks[0])],
            ["2", "   99.00", memo_pointer(blocks[1])],
            ["3", "    0.50", b" " * 10],
        ]
        data = build_dbf(fields, rows, version=0x83, deleted={1},
                         language_driver=DBF_LANG_US, date=(126, 10, 19))
        self.dbf = dbf_file_open(data, memo_data)

    def tearDown(self):
        """Close the table."""
        dbf_file_close(self.dbf)

    def test_open(self):
        """Test that dbf_file_open returns a table."""
        self.assertIsInstance(self.dbf, DBFTable)
        self.assertTrue(self.dbf.has_memo_file)

    def test_row_count(self):
        """Test the declared row count."""
        self.assertEqual(dbf_file_get_actual_row_count(self.dbf), 3)
        self.assertEqual(dbf_file_get_actual_row_count(None), 0)

    def test_read_row(self):
        """Test reading rows by index, deleted rows included."""
        deleted, values = dbf_file_read_row(self.dbf, 0)
        self.assertFalse(deleted)
        self.assertEqual(values, {"ID": 1, "PRICE": 1.25, "NOTES": "cheap"})

        deleted, values = dbf_file_read_row(self.dbf, 1)
        self.assertTrue(deleted)
        self.assertEqual(values["NOTES"], "dear")

    def test_read_row_out_of_range(self):
        """Test that reading past the declared count raises IndexError."""
        with self.assertRaises(IndexError):
            dbf_file_read_row(self.dbf, 3)

    def test_iter_rows(self):
        """Test iterating with and without deleted rows."""
        self.assertEqual([r["ID"] for r in dbf_file_iter_rows(self.dbf)], [1, 3])
        self.assertEqual([r["ID"] for r in dbf_file_iter_rows(self.dbf, include_deleted=True)],
                         [1, 2, 3])

    def test_fields(self):
        """Test field descriptors and their specification strings."""
        fields = dbf_file_get_fields(self.dbf)
        self.assertEqual([build_field_spec(f) for f in fields], ["N(5)", "N(8,2)", "M(10)"])

    def test_date_and_language_driver(self):
        """Test the header date and language driver getters."""
        self.assertEqual(dbf_file_get_date(self.dbf), (126, 10, 19))
        self.assertEqual(dbf_file_get_language_driver(self.dbf), DBF_LANG_US)
        self.assertEqual(dbf_file_get_date(None), (0, 0, 0))
        self.assertEqual(dbf_file_get_language_driver(None), 0)

    def test_build_field_spec(self):
        """Test field specification strings for single columns."""
        self.assertEqual(build_field_spec(DBFColumn("NAME", "C", 30)), "C(30)")
        self.assertEqual(build_field_spec(DBFColumn("PRICE", "N", 10, 2)), "N(10,2)")


if __name__ == '__main__':
    unittest.main()
