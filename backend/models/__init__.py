from models.exam import Exam
from models.school_class import SchoolClass
from models.subject import Subject

__all__ = [
	"Exam",
	"SchoolClass",
	"Subject",
]
