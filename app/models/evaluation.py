from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint, false
from ..core.database import Base


# (week, student_id, evaluation_type) identifies one evaluation
KEY_COLUMNS = ("week", "student_id", "evaluation_type")

# Overwritten when an existing evaluation is written again
MUTABLE_COLUMNS = ("engagement", "behavior", "absent", "date")


class Evaluation(Base):
    __tablename__ = "evaluations"
    __table_args__ = (
        UniqueConstraint(*KEY_COLUMNS, name="uq_evaluations_week_student_type"),
        # ids are never reused after a delete
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    week = Column(String, nullable=False, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    student_name = Column(String, nullable=False)
    evaluation_type = Column(String, nullable=False)
    engagement = Column(String, nullable=True)
    behavior = Column(Integer, nullable=True)
    absent = Column(Boolean, nullable=False, default=False, server_default=false())
    date = Column(String, nullable=False)

    def __repr__(self):
        return (
            f"<Evaluation id={self.id} week={self.week!r} "
            f"student_id={self.student_id} type={self.evaluation_type!r}>"
        )
