"""Ledger error taxonomy. Each error carries the HTTP status it maps to."""


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(LedgerError):
    """Missing credentials or billing fee; fatal for money-moving operations."""

    status_code = 500


class InvalidInputError(LedgerError):
    status_code = 400


class NotFoundError(LedgerError):
    status_code = 404


class ConflictError(LedgerError):
    status_code = 409


class MissingEnrollmentDate(LedgerError):
    """Member has no enrollment timestamp, so dues cannot be computed."""

    status_code = 422

    def __init__(self, member_id: str):
        super().__init__(f"Member {member_id} has no enrollment date; dues cannot be computed")
        self.member_id = member_id


class GatewayError(LedgerError):
    status_code = 502
