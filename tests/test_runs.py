import unittest

from solver.errors import InvalidRunError
from solver.runs import encode_runs, head_length, min_line_length, normalize_runs, parse_runs, run_count, tail


class TestRunDescriptor(unittest.TestCase):
    def test_parses_single_digit_runs(self) -> None:
        self.assertEqual(parse_runs("73117"), (7, 3, 1, 1, 7))

    def test_parses_extended_alphabet_runs(self) -> None:
        self.assertEqual(parse_runs("1313A2"), (1, 3, 1, 3, 10, 2))
        self.assertEqual(parse_runs("BZ"), (11, 35))

    def test_lowercase_letters_decode_like_uppercase(self) -> None:
        self.assertEqual(parse_runs("1313a2"), (1, 3, 1, 3, 10, 2))
        self.assertEqual(parse_runs("bz"), parse_runs("BZ"))

    def test_raises_on_symbol_outside_run_alphabet(self) -> None:
        for encoded in ("~", "3{", "1313A2!"):
            with self.subTest(encoded=encoded):
                with self.assertRaises(InvalidRunError):
                    parse_runs(encoded)

    def test_encode_raises_on_run_too_long_for_compact_form(self) -> None:
        self.assertEqual(encode_runs([41]), "`")
        with self.assertRaises(InvalidRunError):
            encode_runs([42])

    def test_encodes_and_decodes_single_digit_runs(self) -> None:
        encoded = encode_runs([7, 3, 1, 1, 7])
        self.assertEqual(encoded, "73117")
        self.assertEqual(parse_runs(encoded), (7, 3, 1, 1, 7))

    def test_encodes_and_decodes_runs_beyond_nine(self) -> None:
        runs = [1, 3, 1, 36, 2, 1, 3, 1]
        encoded = encode_runs(runs)
        self.assertEqual(len(encoded), len(runs))
        self.assertEqual(parse_runs(encoded), tuple(runs))

    def test_empty_string_is_an_empty_line(self) -> None:
        self.assertEqual(parse_runs(""), ())

    def test_raises_on_zero_run(self) -> None:
        with self.assertRaises(InvalidRunError):
            parse_runs("303")

    def test_raises_on_symbol_below_extended_alphabet(self) -> None:
        with self.assertRaises(InvalidRunError):
            parse_runs("3 3")
        with self.assertRaises(InvalidRunError):
            parse_runs("3@")

    def test_encode_raises_on_non_positive_run(self) -> None:
        with self.assertRaises(InvalidRunError):
            encode_runs([2, 0])

    def test_invalid_run_error_is_a_value_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_runs("0")

    def test_normalizes_lists_and_strings(self) -> None:
        self.assertEqual(normalize_runs([2, 12]), (2, 12))
        self.assertEqual(normalize_runs("2C"), (2, 12))
        self.assertEqual(normalize_runs([]), ())

    def test_normalize_rejects_non_positive_and_non_integer_runs(self) -> None:
        with self.assertRaises(InvalidRunError):
            normalize_runs([3, -1])
        with self.assertRaises(ValueError):
            normalize_runs([3, "a"])
        with self.assertRaises(ValueError):
            normalize_runs([True])
        with self.assertRaises(ValueError):
            normalize_runs(5)

    def test_head_tail_and_length(self) -> None:
        runs = (4, 1, 2)
        self.assertEqual(run_count(runs), 3)
        self.assertEqual(head_length(runs), 4)
        self.assertEqual(tail(runs), (1, 2))
        self.assertEqual(head_length(()), 0)
        self.assertEqual(tail(()), ())

    def test_min_line_length_counts_gaps(self) -> None:
        self.assertEqual(min_line_length((3, 1, 2)), 8)
        self.assertEqual(min_line_length(()), 0)


if __name__ == "__main__":
    unittest.main()
