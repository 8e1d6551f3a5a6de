"""
Test file for DBF column descriptors.
Covers descriptor parsing, name cleaning and the per-type value casts.
"""

import datetime
import struct
import unittest
from dbf_column import ColumnType, DBFColumn, JULIAN_DAY_OFFSET
from dbf_errors import ColumnLengthError, ColumnNameError, DBFHeaderError
from dbf_fixtures import build_descriptor


def julian_datetime_bytes(moment):
    """Pack a datetime as Julian day + milliseconds since midnight."""
    days = moment.toordinal() + JULIAN_DAY_OFFSET
    millis = ((moment.hour * 3600) + (moment.minute * 60) + moment.second) * 1000
    return struct.pack("<2l", days, millis)


class TestDBFColumnParse(unittest.TestCase):
    """Test cases for parsing field descriptors."""

    def test_parse_descriptor_fields(self):
        """Test that name, type, length and decimals come from the descriptor."""
        column = DBFColumn.parse(build_descriptor("PRICE", "N", 10, 2))

        self.assertEqual(column.name, "PRICE")
        self.assertEqual(column.field_type, "N")
        self.assertEqual(column.length, 10)
        self.assertEqual(column.decimals, 2)

    def test_parse_18_byte_descriptor(self):
        """Test that the 14 trailing reserved bytes are optional."""
        column = DBFColumn.parse(build_descriptor("NAME", "C", 30)[:18])

        self.assertEqual(column.name, "NAME")
        self.assertEqual(column.length, 30)

    def test_zero_length_is_sentinel(self):
        """Test that a zero-length descriptor ends the block."""
        self.assertIsNone(DBFColumn.parse(build_descriptor("NAME", "C", 0)))

    def test_truncated_descriptor(self):
        """Test that a descriptor shorter than 18 bytes is a header error."""
        with self.assertRaises(DBFHeaderError):
            DBFColumn.parse(build_descriptor("NAME", "C", 10)[:12])

    def test_name_truncated_at_null(self):
        """Test that garbage after the first NUL is dropped."""
        column = DBFColumn.parse(build_descriptor(b"ID\x00XYZ", "N", 5))
        self.assertEqual(column.name, "ID")

    def test_name_non_printable_removed(self):
        """Test that bytes outside printable ASCII are stripped from names."""
        column = DBFColumn.parse(build_descriptor(b"A\x07B\xe9C", "C", 5))
        self.assertEqual(column.name, "ABC")

    def test_empty_name_rejected(self):
        """Test that a name with no printable characters is rejected."""
        with self.assertRaises(ColumnNameError):
            DBFColumn.parse(build_descriptor(b"\x01\x02", "C", 5))

    def test_non_positive_length_rejected(self):
        """Test that columns need a positive length."""
        with self.assertRaises(ColumnLengthError):
            DBFColumn(name="ID", field_type="N", length=0)
        with self.assertRaises(ColumnLengthError):
            DBFColumn(name="ID", field_type="N", length=-3)

    def test_constructor_keeps_name(self):
        """Test that only descriptor parsing cleans names."""
        self.assertEqual(DBFColumn("Größe", "N", 5).name, "Größe")
        self.assertEqual(DBFColumn("名前", "C", 10).name, "名前")
        with self.assertRaises(ColumnNameError):
            DBFColumn("", "C", 5)

    def test_column_is_immutable(self):
        """Test that a parsed column cannot be modified."""
        column = DBFColumn(name="ID", field_type="N", length=5)
        with self.assertRaises(AttributeError):
            column.length = 6

    def test_kind_and_memo_flag(self):
        """Test the column kind lookup and memo detection."""
        self.assertEqual(DBFColumn("NOTES", "M", 10).kind, ColumnType.MEMO)
        self.assertTrue(DBFColumn("NOTES", "M", 10).is_memo)
        self.assertFalse(DBFColumn("NAME", "C", 10).is_memo)
        self.assertIsNone(DBFColumn("PIC", "G", 10).kind)


class TestDBFColumnCast(unittest.TestCase):
    """Test cases for casting raw field bytes."""

    def test_number_without_decimals(self):
        """Test that N fields with no decimals become integers."""
        column = DBFColumn("QTY", "N", 3)
        value = column.cast(b"007")
        self.assertEqual(value, 7)
        self.assertIsInstance(value, int)
        self.assertEqual(column.cast(b"  -42"), -42)

    def test_number_with_decimals(self):
        """Test that N fields with decimals become floats."""
        column = DBFColumn("PRICE", "N", 4, 2)
        value = column.cast(b"3.50")
        self.assertEqual(value, 3.5)
        self.assertIsInstance(value, float)

    def test_malformed_number_is_zero(self):
        """Test that bad numeric text decodes to zero instead of failing."""
        self.assertEqual(DBFColumn("QTY", "N", 5).cast(b"*****"), 0)
        self.assertEqual(DBFColumn("QTY", "N", 5).cast(b"     "), 0)
        self.assertEqual(DBFColumn("PRICE", "N", 6, 2).cast(b"abc"), 0.0)

    def test_float(self):
        """Test F fields."""
        column = DBFColumn("RATE", "F", 8, 3)
        self.assertAlmostEqual(column.cast(b"  12.125"), 12.125)
        self.assertEqual(column.cast(b"        "), 0.0)

    def test_integer(self):
        """Test that I fields are little-endian unsigned 32-bit integers."""
        column = DBFColumn("COUNT", "I", 4)
        self.assertEqual(column.cast(struct.pack("<L", 123456)), 123456)
        self.assertEqual(column.cast(b"\xff\xff\xff\xff"), 4294967295)

    def test_date(self):
        """Test D fields."""
        column = DBFColumn("BORN", "D", 8)
        self.assertEqual(column.cast(b"20230615"), datetime.date(2023, 6, 15))

    def test_blank_date(self):
        """Test that a blank date is None."""
        self.assertIsNone(DBFColumn("BORN", "D", 8).cast(b"        "))

    def test_malformed_date(self):
        """Test that malformed dates are None rather than errors."""
        column = DBFColumn("BORN", "D", 8)
        self.assertIsNone(column.cast(b"2023061"))
        self.assertIsNone(column.cast(b"20231341"))
        self.assertIsNone(column.cast(b"abcdefgh"))

    def test_date_spaces_read_as_zero(self):
        """Test that embedded spaces count as zero digits."""
        self.assertEqual(DBFColumn("BORN", "D", 8).cast(b"2023061 "), datetime.date(2023, 6, 10))

    def test_datetime(self):
        """Test T fields stored as Julian day + milliseconds."""
        moment = datetime.datetime(2023, 6, 15, 13, 45, 30)
        column = DBFColumn("STAMP", "T", 8)
        self.assertEqual(column.cast(julian_datetime_bytes(moment)), moment)

    def test_invalid_datetime(self):
        """Test that impossible day/time values give None."""
        column = DBFColumn("STAMP", "T", 8)
        self.assertIsNone(column.cast(b"\x00" * 8))
        day = datetime.date(2023, 6, 15).toordinal() + JULIAN_DAY_OFFSET
        self.assertIsNone(column.cast(struct.pack("<2l", day, 90000000)))
        self.assertIsNone(column.cast(struct.pack("<2l", day, -5000)))

    def test_logical_true(self):
        """Test that Y/y/T/t are true."""
        column = DBFColumn("ACTIVE", "L", 1)
        for raw in (b"Y", b"y", b"T", b"t"):
            self.assertIs(column.cast(raw), True, raw)

    def test_logical_false(self):
        """Test that anything else is false."""
        column = DBFColumn("ACTIVE", "L", 1)
        for raw in (b"N", b" ", b"?", b"F", b"1"):
            self.assertIs(column.cast(raw), False, raw)

    def test_character_trailing_blanks(self):
        """Test that trailing spaces and NULs are trimmed but leading ones kept."""
        column = DBFColumn("NAME", "C", 10)
        self.assertEqual(column.cast(b"  Keith   "), "  Keith")
        self.assertEqual(column.cast(b"Ann\x00\x00\x00\x00\x00\x00\x00"), "Ann")

    def test_character_encoding(self):
        """Test that character data is decoded with the given codec."""
        column = DBFColumn("CITY", "C", 8)
        self.assertEqual(column.cast(b"K\x94ln   ", "cp437"), "Köln")
        self.assertEqual(column.cast(b"K\xf6ln   ", "cp1252"), "Köln")

    def test_unknown_type_is_string(self):
        """Test that unknown type tags fall back to strings."""
        self.assertEqual(DBFColumn("PIC", "G", 6).cast(b"abc   "), "abc")


class TestDBFColumnSchema(unittest.TestCase):
    """Test cases for schema definitions."""

    def test_schema_definitions(self):
        """Test the type hint for each column kind."""
        cases = [
            (DBFColumn("QTY", "N", 5), '"qty", :integer'),
            (DBFColumn("PRICE", "N", 8, 2), '"price", :float'),
            (DBFColumn("RATE", "F", 8, 0), '"rate", :integer'),
            (DBFColumn("COUNT", "I", 4), '"count", :integer'),
            (DBFColumn("BORN", "D", 8), '"born", :date'),
            (DBFColumn("STAMP", "T", 8), '"stamp", :datetime'),
            (DBFColumn("ACTIVE", "L", 1), '"active", :boolean'),
            (DBFColumn("NOTES", "M", 10), '"notes", :text'),
            (DBFColumn("FirstName", "C", 20), '"first_name", :string, :limit => 20'),
        ]
        for column, expected in cases:
            self.assertEqual(column.schema_definition(), expected)


if __name__ == '__main__':
    unittest.main()
