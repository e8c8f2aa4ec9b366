"""
Unit Tests for the exception taxonomy
"""
import pytest

from app.core.exceptions import (
    SocietySyncError,
    ValidationError,
    InvalidOTPError,
    InvalidCredentialsError,
    AuthorizationError,
    EligibilityError,
    EmailMismatchError,
    InviteNotFoundError,
    ApplicationNotFoundError,
    UserAlreadyExistsError,
    InviteAlreadyUsedError,
    DuplicateApplicationError,
    DuplicateFeedbackError,
    InvalidTransitionError,
    OTPExpiredError,
    InviteExpiredError,
    MembershipTransitionError,
    error_response,
)


@pytest.mark.parametrize("error, status", [
    (ValidationError("bad"), 400),
    (InvalidOTPError(), 400),
    (OTPExpiredError(), 400),
    (InviteExpiredError(), 400),
    (InvalidCredentialsError(), 401),
    (AuthorizationError(), 403),
    (EligibilityError("ADMIN"), 403),
    (EmailMismatchError(), 403),
    (InviteNotFoundError(), 404),
    (ApplicationNotFoundError("x"), 404),
    (UserAlreadyExistsError(), 409),
    (InviteAlreadyUsedError(), 409),
    (DuplicateApplicationError(), 409),
    (DuplicateFeedbackError(), 409),
    (InvalidTransitionError("REJECTED", "SELECTED"), 409),
    (MembershipTransitionError("u1"), 500),
])
def test_status_codes(error, status):
    assert isinstance(error, SocietySyncError)
    assert error.status_code == status


def test_user_facing_messages():
    assert UserAlreadyExistsError().message == "User already exists"
    assert InviteAlreadyUsedError().message == "Invite is invalid or already used"
    assert DuplicateApplicationError().message == "You already have an active application for this society."
    assert DuplicateFeedbackError().message == "Feedback already submitted for this application by this interviewer."
    assert ApplicationNotFoundError(message="Selected application not found.").message == "Selected application not found."


def test_validation_error_carries_field():
    error = ValidationError("Passwords do not match", field="confirm_password")

    assert error.code == "VALIDATION_ERROR"
    assert error.details == {"field": "confirm_password"}


def test_eligibility_error_names_role():
    error = EligibilityError("FACULTY")

    assert error.code == "NOT_ELIGIBLE"
    assert "faculty" in error.message
    assert error.details == {"role": "FACULTY"}


def test_error_response_shape():
    body = error_response(InvalidTransitionError("APPLIED", "SELECTED"))

    assert body["success"] is False
    assert body["message"] == "Cannot move application from APPLIED to SELECTED"
    assert body["error"]["code"] == "INVALID_TRANSITION"
    assert body["error"]["details"] == {"from": "APPLIED", "to": "SELECTED"}
