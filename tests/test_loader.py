import json
import tempfile
import unittest
from pathlib import Path

from a2quiz.storage.loader import load_question_bank, parse_question_bank, read_question_bank
from a2quiz.storage.store import QuizStore


class QuestionBankLoaderTests(unittest.TestCase):
    def test_structured_document_with_aliases(self) -> None:
        doc = {
            "categories": [{"id": 1, "name": "Air Law"}],
            "questions": [{"id": 7, "categoryId": 1, "text": "Q?", "options": ["a", "b"], "correctIndex": 1}],
        }
        cats, qs = parse_question_bank(doc)
        self.assertEqual(cats, [{"id": 1, "name": "Air Law"}])
        self.assertEqual(qs[0]["question"], "Q?")
        self.assertEqual(qs[0]["correct_index"], 1)
        self.assertEqual(qs[0]["category_id"], 1)

    def test_flat_document_makes_one_category_per_key(self) -> None:
        doc = {
            "Air Law": [{"id": 1, "question": "A?", "options": ["x", "y"], "correct_index": 0}],
            "Meteorology": [{"id": 2, "question": "B?", "options": ["x", "y"], "correct_index": 1}],
        }
        cats, qs = parse_question_bank(doc)
        self.assertEqual([c["name"] for c in cats], ["Air Law", "Meteorology"])
        self.assertEqual([q["category_id"] for q in qs], [1, 2])

    def test_rejects_non_mapping(self) -> None:
        with self.assertRaises(ValueError):
            parse_question_bank([1, 2, 3])
        with self.assertRaises(ValueError):
            parse_question_bank({"Air Law": "not a list"})

    def test_load_json_and_yaml_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            jpath = Path(tmp) / "bank.json"
            jpath.write_text(
                json.dumps(
                    {
                        "categories": [{"id": 1, "name": "Air Law"}],
                        "questions": [
                            {"id": 1, "category_id": 1, "question": "A?", "options": ["x", "y"], "correct_index": 0},
                            {"id": 2, "category_id": 1, "question": "B?", "options": ["x", "y", "z"], "correct_index": 2},
                        ],
                    }
                ),
                encoding="utf-8",
            )
            store = QuizStore()
            self.assertEqual(load_question_bank(store, jpath), 2)
            self.assertEqual(store.fetch_questions_by_ids([2])[0].correct_option, "z")

            ypath = Path(tmp) / "bank.yml"
            ypath.write_text(
                "Meteorology:\n"
                "  - {id: 5, question: 'C?', options: [p, q], correct_index: 1}\n",
                encoding="utf-8",
            )
            self.assertEqual(read_question_bank(ypath)["Meteorology"][0]["id"], 5)
            self.assertEqual(load_question_bank(store, ypath), 1)
            self.assertEqual(store.total_question_count(), 1)


if __name__ == "__main__":
    unittest.main()
