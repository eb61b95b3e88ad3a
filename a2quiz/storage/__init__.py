from .schema import DTYPES, TABLES
from .store import QuizStore, init_store, export_ndjson
from .loader import load_question_bank, parse_question_bank

__all__ = [
    "DTYPES",
    "TABLES",
    "QuizStore",
    "init_store",
    "export_ndjson",
    "load_question_bank",
    "parse_question_bank",
]
