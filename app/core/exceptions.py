class StoreError(Exception):
    """A failure reported by the evaluation store, with the raw database message"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConstraintViolation(StoreError):
    """An insert or update rejected by a table constraint (UNIQUE, NOT NULL)"""
