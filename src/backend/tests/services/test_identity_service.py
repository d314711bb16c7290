"""
Tests for signup, email verification and session handling.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import (
    ConflictError,
    DependencyError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from services.identity_service import normalize_phone_number, password_problems

GOOD_PASSWORD = "Sunshine42"


async def _signup(identity_service, email="carol@mail.com", username="carol", password=GOOD_PASSWORD):
    return await identity_service.signup(email=email, username=username, password=password)


@pytest.mark.unit
class TestPasswordPolicy:
    def test_strong_password_has_no_problems(self) -> None:
        assert password_problems("Abcdefgh") == []

    def test_every_problem_is_reported(self) -> None:
        problems = password_problems("abc")

        assert len(problems) == 2
        assert any("8 characters" in p for p in problems)
        assert any("uppercase" in p for p in problems)


@pytest.mark.unit
class TestPhoneNumber:
    def test_international_mobile_is_normalized(self) -> None:
        assert normalize_phone_number("+44 7400 123456") == "+447400123456"

    def test_national_number_uses_country_code(self) -> None:
        assert normalize_phone_number("07400 123456", country="gb") == "+447400123456"
        assert normalize_phone_number("(650) 253-0000", country="US") == "+16502530000"

    def test_national_number_without_region_is_invalid(self) -> None:
        assert normalize_phone_number("07400 123456", country="United Kingdom") is None

    def test_landline_is_rejected(self) -> None:
        assert normalize_phone_number("+44 20 8366 1177") is None

    def test_garbage_is_rejected(self) -> None:
        assert normalize_phone_number("call me maybe") is None
        assert normalize_phone_number("+1 555") is None


@pytest.mark.unit
class TestSignup:
    async def test_creates_unverified_user_and_sends_code(self, identity_service, repos, email_outbox) -> None:
        user = await _signup(identity_service, email="Carol@Mail.com")

        assert user.is_verified is False
        assert user.karma == 0
        assert user.hashed_password != GOOD_PASSWORD
        assert email_outbox.sent[0][0] == user.email
        assert len(email_outbox.last_code_for(user.email)) == 4
        assert len(repos.otps.items) == 1
        assert repos.otps.items[0].hashed_code != email_outbox.last_code_for(user.email)

    async def test_reports_all_errors_together(self, identity_service, repos) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.signup(email="not-an-email", username=" ", password="short")

        errors = exc_info.value.errors
        assert exc_info.value.code == "invalid_signup"
        assert "Invalid email address" in errors
        assert "Username is required" in errors
        assert any("8 characters" in e for e in errors)
        assert repos.users.items == {}

    async def test_invalid_phone_reported_with_other_errors(self, identity_service, repos) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.signup(
                email="not-an-email",
                username="carol",
                password="weakpassword",
                phone_number="12345",
            )

        errors = exc_info.value.errors
        assert "Invalid phone number" in errors
        assert "Invalid email address" in errors
        assert any("uppercase" in e for e in errors)
        assert repos.users.items == {}

    async def test_invalid_phone_alone_rejects_signup(self, identity_service, repos) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.signup(
                email="carol@mail.com",
                username="carol",
                password=GOOD_PASSWORD,
                phone_number="+44 20 8366 1177",
            )

        assert exc_info.value.errors == ["Invalid phone number"]
        assert repos.users.items == {}

    async def test_phone_number_stored_in_e164(self, identity_service) -> None:
        user = await identity_service.signup(
            email="carol@mail.com",
            username="carol",
            password=GOOD_PASSWORD,
            country="GB",
            phone_number="07400 123456",
        )

        assert user.phone_number == "+447400123456"

    async def test_phone_number_is_optional(self, identity_service) -> None:
        user = await _signup(identity_service)

        assert user.phone_number is None

    async def test_duplicate_email_conflicts(self, identity_service) -> None:
        await _signup(identity_service)

        with pytest.raises(ConflictError) as exc_info:
            await _signup(identity_service, username="other")
        assert exc_info.value.code == "email_taken"

    async def test_mail_failure_keeps_account(self, identity_service, repos, email_outbox) -> None:
        email_outbox.fail = True

        with pytest.raises(DependencyError):
            await _signup(identity_service)

        assert await repos.users.get_by_email("carol@mail.com") is not None


@pytest.mark.unit
class TestVerify:
    async def test_correct_code_verifies(self, identity_service, repos, email_outbox) -> None:
        user = await _signup(identity_service)
        code = email_outbox.last_code_for(user.email)

        verified = await identity_service.verify(user.email, code)

        assert verified.is_verified is True
        assert repos.otps.items == []

    async def test_wrong_code_rejected(self, identity_service, email_outbox) -> None:
        user = await _signup(identity_service)
        code = email_outbox.last_code_for(user.email)
        wrong = "1000" if code != "1000" else "1001"

        with pytest.raises(ValidationError) as exc_info:
            await identity_service.verify(user.email, wrong)
        assert exc_info.value.code == "invalid_code"

    async def test_expired_code_reissues(self, identity_service, repos, email_outbox) -> None:
        user = await _signup(identity_service)
        old_code = email_outbox.last_code_for(user.email)
        repos.otps.items[0].expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)

        with pytest.raises(ValidationError) as exc_info:
            await identity_service.verify(user.email, old_code)
        assert exc_info.value.code == "code_expired"

        assert len(email_outbox.sent) == 2
        assert len(repos.otps.items) == 1
        assert not repos.otps.items[0].is_expired()

        new_code = email_outbox.last_code_for(user.email)
        verified = await identity_service.verify(user.email, new_code)
        assert verified.is_verified is True

    async def test_already_verified(self, identity_service, make_user) -> None:
        user = make_user("dave")

        with pytest.raises(ConflictError) as exc_info:
            await identity_service.verify(user.email, "1234")
        assert exc_info.value.code == "already_verified"

    async def test_unknown_email(self, identity_service) -> None:
        with pytest.raises(NotFoundError):
            await identity_service.verify("nobody@mail.com", "1234")

    async def test_resend_replaces_code(self, identity_service, repos, email_outbox) -> None:
        user = await _signup(identity_service)

        await identity_service.resend_verification(user.email)

        assert len(email_outbox.sent) == 2
        assert len(repos.otps.items) == 1


@pytest.mark.unit
class TestSessions:
    @pytest.fixture
    def account(self, make_user, hasher):
        return make_user("erin", hashed_password=hasher.hash(GOOD_PASSWORD))

    async def test_login_issues_token(self, identity_service, repos, account) -> None:
        result = await identity_service.login(account.email, GOOD_PASSWORD)

        assert result.token_type == "bearer"
        assert result.user.id == account.id
        assert (await repos.users.get_by_id(account.id)).last_login_at is not None

        user = await identity_service.authenticate(result.access_token)
        assert user.id == account.id

    async def test_wrong_password_and_unknown_email_look_alike(self, identity_service, account) -> None:
        with pytest.raises(UnauthorizedError) as wrong_password:
            await identity_service.login(account.email, "Wrong-password1")
        with pytest.raises(UnauthorizedError) as unknown_email:
            await identity_service.login("ghost@mail.com", GOOD_PASSWORD)

        assert wrong_password.value.code == unknown_email.value.code == "invalid_credentials"

    async def test_unverified_login_forbidden(self, identity_service, make_user, hasher) -> None:
        user = make_user("frank", is_verified=False, hashed_password=hasher.hash(GOOD_PASSWORD))

        with pytest.raises(ForbiddenError) as exc_info:
            await identity_service.login(user.email, GOOD_PASSWORD)
        assert exc_info.value.code == "email_not_verified"

    async def test_garbage_token_rejected(self, identity_service) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            await identity_service.authenticate("not.a.token")
        assert exc_info.value.code == "invalid_token"

    async def test_logout_revokes_token(self, identity_service, account) -> None:
        result = await identity_service.login(account.email, GOOD_PASSWORD)

        await identity_service.logout(result.access_token)

        with pytest.raises(UnauthorizedError) as exc_info:
            await identity_service.authenticate(result.access_token)
        assert exc_info.value.code == "token_revoked"

    async def test_logout_leaves_other_sessions(self, identity_service, account) -> None:
        first = await identity_service.login(account.email, GOOD_PASSWORD)
        second = await identity_service.login(account.email, GOOD_PASSWORD)

        await identity_service.logout(first.access_token)

        assert (await identity_service.authenticate(second.access_token)).id == account.id
