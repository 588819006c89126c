class DomainError(Exception):
    pass


class Unauthorized(DomainError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.message = f"{entity.capitalize()} not found"


class ValidationFailure(DomainError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoQuestionsError(ValidationFailure):
    def __init__(self, assessment: str = "assessment"):
        super().__init__(f"No questions found for this {assessment}")


class ConcurrentUpdateError(DomainError):
    """Progress was modified by another request between read and save."""
    def __init__(self, user_id: str, course_id: int):
        super().__init__(f"progress for user {user_id} in course {course_id} changed concurrently")
        self.user_id = user_id
        self.course_id = course_id
