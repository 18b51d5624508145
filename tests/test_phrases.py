"""
tests/test_phrases.py — Tests for PhraseRecord and PhraseBook.
"""

from __future__ import annotations

import unittest

from pydantic import ValidationError

from eyetalk.board.phrases import DEFAULT_COLOR, DEFAULT_PHRASES, PhraseBook, PhraseRecord


class TestPhraseRecord(unittest.TestCase):
    """Field defaults and validation."""

    def test_default_audio_ref_from_id(self) -> None:
        record = PhraseRecord(id="water", label="Water please")
        self.assertEqual(record.resolved_audio_ref, "/audio/water.wav")

    def test_explicit_audio_ref_kept(self) -> None:
        record = PhraseRecord(id="water", label="Water", audio_ref="/audio/w2.wav")
        self.assertEqual(record.resolved_audio_ref, "/audio/w2.wav")

    def test_colour_from_category(self) -> None:
        self.assertEqual(PhraseRecord(id="a", label="A", category="medical").resolved_color,
                         "#EF4444")
        self.assertEqual(PhraseRecord(id="a", label="A", category="other").resolved_color,
                         DEFAULT_COLOR)
        self.assertEqual(PhraseRecord(id="a", label="A", color="#000000").resolved_color,
                         "#000000")

    def test_empty_label_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            PhraseRecord(id="a", label="   ")

    def test_negative_usage_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            PhraseRecord(id="a", label="A", usage_count=-1)


class TestPhraseBook(unittest.TestCase):
    """Collection operations."""

    def setUp(self) -> None:
        self.book = PhraseBook()

    def test_defaults_loaded_in_order(self) -> None:
        self.assertEqual([p.id for p in self.book.phrases], ["thirsty", "hungry", "help", "pain"])
        self.assertEqual(len(self.book), len(DEFAULT_PHRASES))

    def test_empty_book_when_given_empty_list(self) -> None:
        self.assertEqual(len(PhraseBook([])), 0)

    def test_add_appends_and_rejects_duplicates(self) -> None:
        self.book.add(PhraseRecord(id="cold", label="I am cold", category="comfort"))
        self.assertEqual(self.book.phrases[-1].id, "cold")
        with self.assertRaises(ValueError):
            self.book.add(PhraseRecord(id="cold", label="Cold again"))

    def test_update_changes_fields(self) -> None:
        updated = self.book.update("help", label="Please help")
        self.assertEqual(updated.label, "Please help")
        self.assertEqual(self.book.get("help").label, "Please help")
        self.assertIsNone(self.book.update("missing", label="x"))

    def test_remove(self) -> None:
        self.assertTrue(self.book.remove("hungry"))
        self.assertFalse(self.book.remove("hungry"))
        self.assertIsNone(self.book.get("hungry"))

    def test_increment_usage(self) -> None:
        self.assertEqual(self.book.increment_usage("pain"), 1)
        self.assertEqual(self.book.increment_usage("pain"), 2)
        self.assertEqual(self.book.get("pain").usage_count, 2)
        self.assertEqual(self.book.increment_usage("missing"), 0)

    def test_defaults_not_mutated_by_usage(self) -> None:
        self.book.increment_usage("pain")
        self.assertEqual(PhraseBook().get("pain").usage_count, 0)

    def test_replace_rejects_duplicate_ids(self) -> None:
        with self.assertRaises(ValueError):
            self.book.replace([PhraseRecord(id="a", label="A"), PhraseRecord(id="a", label="B")])
        self.assertEqual(len(self.book), 4)

    def test_categories_and_filter(self) -> None:
        self.assertEqual(self.book.categories(), ["assistance", "basic_needs", "medical"])
        self.assertEqual([p.id for p in self.book.by_category("basic_needs")],
                         ["thirsty", "hungry"])


if __name__ == "__main__":
    unittest.main()
