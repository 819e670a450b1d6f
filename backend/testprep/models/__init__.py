"""Mock Test Platform - Models initialization."""
from testprep.models.catalog import (
    Test,
    Question,
    TestQuestion,
    OptionKey,
    ExamType,
    TestType,
    SectionType,
    DifficultyLevel,
)
from testprep.models.attempt import (
    TestAttempt,
    AnswerRecord,
    AnswerStatus,
    LanguagePreference,
)


__all__ = [
    # Catalog models
    "Test",
    "Question",
    "TestQuestion",
    "OptionKey",
    "ExamType",
    "TestType",
    "SectionType",
    "DifficultyLevel",
    # Attempt models
    "TestAttempt",
    "AnswerRecord",
    "AnswerStatus",
    "LanguagePreference",
]
