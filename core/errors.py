from enum import Enum


class ValidationErrorKind(str, Enum):
    MALFORMED_BODY = "malformed_body"
    DUPLICATE_QUESTION = "duplicate_question"
    FOREIGN_QUESTION = "foreign_question"
    MISMATCHED_OPTION = "mismatched_option"


VALIDATION_MESSAGES = {
    ValidationErrorKind.MALFORMED_BODY: "Invalid request body.",
    ValidationErrorKind.DUPLICATE_QUESTION: "Each question can only have one selected option.",
    ValidationErrorKind.FOREIGN_QUESTION: "One or more questions do not belong to this quiz session.",
    ValidationErrorKind.MISMATCHED_OPTION: "One or more options do not belong to their provided question.",
}


class AnswerValidationError(Exception):
    """A submitted answer set the caller can fix. Raised before any write."""

    def __init__(self, kind: ValidationErrorKind, message: str = None):
        self.kind = kind
        self.message = message or VALIDATION_MESSAGES[kind]
        super().__init__(self.message)


class SessionNotFoundError(Exception):
    """Missing quiz session, or one owned by another user."""

    def __init__(self, message: str = "Quiz session not found."):
        self.message = message
        super().__init__(message)


class QuizNotFoundError(Exception):
    def __init__(self, message: str = "Quiz not found."):
        self.message = message
        super().__init__(message)


class StoreError(Exception):
    """Persistence failure. `message` is safe to show to the caller."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class GenerationError(Exception):
    def __init__(self, message: str = "Failed to generate quiz.", status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
