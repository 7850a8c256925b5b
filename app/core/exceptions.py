from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Teacher, class, subject, student or selection does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class NoActiveAcademicYearError(ServiceError):
    def __init__(self, message: str = "No active academic year found") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class EmptyClassError(ServiceError):
    def __init__(self, message: str = "No subjects found in class") -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UnauthorizedError(ServiceError):
    """Gate denial. Distinct from NotFoundError: the records exist, access does not."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)
