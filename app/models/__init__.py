from app.models.document import Document
from app.models.exam import Exam
from app.models.question import Question
from app.models.question_option import QuestionOption
from app.models.student_answer import StudentAnswer
from app.models.exam_result import ExamResult
from app.models.student_progress import StudentProgress

__all__ = [
    "Document",
    "Exam",
    "Question",
    "QuestionOption",
    "StudentAnswer",
    "ExamResult",
    "StudentProgress",
]
