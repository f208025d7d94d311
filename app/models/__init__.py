from .evaluation import Evaluation, KEY_COLUMNS, MUTABLE_COLUMNS

__all__ = [
    "Evaluation",
    "KEY_COLUMNS",
    "MUTABLE_COLUMNS",
]
