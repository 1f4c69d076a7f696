import unittest
from datetime import date, datetime

from fx_euro.utils.date_range import iter_days_between, ordinal_offset, parse_date


class DateRangeTests(unittest.TestCase):
    def test_parse_date(self) -> None:
        self.assertEqual(parse_date(" 1999-01-04 "), date(1999, 1, 4))
        self.assertEqual(parse_date(datetime(1999, 1, 4, 14, 15)), date(1999, 1, 4))
        self.assertEqual(parse_date(date(1999, 1, 4)), date(1999, 1, 4))

    def test_invalid_input(self) -> None:
        with self.assertRaises(ValueError):
            parse_date("04/01/1999")

    def test_iter_days_between_is_exclusive(self) -> None:
        days = list(iter_days_between(date(1999, 12, 30), date(2000, 1, 2)))

        self.assertEqual(days, [date(1999, 12, 31), date(2000, 1, 1)])
        self.assertEqual(list(iter_days_between(date(2000, 1, 1), date(2000, 1, 2))), [])

    def test_ordinal_offset_counts_days(self) -> None:
        self.assertEqual(ordinal_offset(date(2000, 3, 1)) - ordinal_offset(date(2000, 2, 28)), 2)


if __name__ == "__main__":
    unittest.main()
