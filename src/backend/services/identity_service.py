"""
Identity and session guard.

Signup with email verification by one-time code, login, logout and
session token authentication. Codes are hashed before storage and only one
live code exists per unverified user.
"""

from dataclasses import dataclass
from typing import Any, Optional

import phonenumbers
import structlog
from email_validator import EmailNotValidError, validate_email

from core.config import Settings
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from core.logging import mask_email
from core.security import PasswordHasher, TokenIssuer, generate_otp_code
from models.cosmos_documents import UserDocument
from repositories.provider import (
    OTPRepositoryProtocol,
    RevokedTokenRepositoryProtocol,
    UserRepositoryProtocol,
)
from services.email_service import EmailService

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
MOBILE_NUMBER_TYPES = (
    phonenumbers.PhoneNumberType.MOBILE,
    phonenumbers.PhoneNumberType.FIXED_LINE_OR_MOBILE,
)


def password_problems(password: str) -> list[str]:
    """Return every way ``password`` falls short of the strength policy."""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not any(c.isupper() for c in password):
        problems.append("Password must contain an uppercase letter")
    if not any(c.islower() for c in password):
        problems.append("Password must contain a lowercase letter")
    return problems


def normalize_phone_number(value: str, country: Optional[str] = None) -> Optional[str]:
    """
    Return ``value`` in E.164 form, or None if it is not a valid mobile number.

    Numbers without a leading ``+`` are read in the region named by a
    two-letter ``country`` code.
    """
    region = country.strip().upper() if country and len(country.strip()) == 2 else None
    try:
        parsed = phonenumbers.parse(value, region)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    if phonenumbers.number_type(parsed) not in MOBILE_NUMBER_TYPES:
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


@dataclass
class LoginResult:
    access_token: str
    user: UserDocument
    token_type: str = "bearer"


class IdentityService:
    """Accounts, verification codes and session tokens."""

    def __init__(
        self,
        users: UserRepositoryProtocol,
        otps: OTPRepositoryProtocol,
        revoked_tokens: RevokedTokenRepositoryProtocol,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        email: EmailService,
        settings: Settings,
    ):
        self.users = users
        self.otps = otps
        self.revoked_tokens = revoked_tokens
        self.hasher = hasher
        self.tokens = tokens
        self.email = email
        self.settings = settings

    # ========================================================================
    # Signup and verification
    # ========================================================================

    async def signup(
        self,
        email: str,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        country: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> UserDocument:
        """
        Register an unverified account and mail it a verification code.

        All input problems are reported together in one ValidationError.

        Raises:
            ValidationError: invalid email or phone number, weak password or
                blank username
            ConflictError: email or username already registered
            DependencyError: the verification email could not be sent; the
                account exists and can request a new code
        """
        errors: list[str] = []
        normalized_email = email
        try:
            normalized_email = validate_email(email, check_deliverability=False).normalized
        except EmailNotValidError:
            errors.append("Invalid email address")
        errors.extend(password_problems(password))
        if not username or not username.strip():
            errors.append("Username is required")
        normalized_phone = None
        if phone_number:
            normalized_phone = normalize_phone_number(phone_number, country)
            if normalized_phone is None:
                errors.append("Invalid phone number")

        if errors:
            raise ValidationError("Invalid signup details", code="invalid_signup", errors=errors)

        user = await self.users.create(
            email=normalized_email,
            username=username,
            hashed_password=self.hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
            country=country,
            phone_number=normalized_phone,
        )
        logger.info("user_signed_up", user_id=user.id, email=mask_email(user.email))

        await self._issue_code(user)
        return user

    async def _issue_code(self, user: UserDocument) -> None:
        """Replace any stored code with a fresh one and mail it."""
        code = generate_otp_code(self.settings.OTP_LENGTH)
        await self.otps.delete_for_user(user.id)
        await self.otps.create(user.id, self.hasher.hash(code), self.settings.OTP_EXPIRY_MINUTES)
        await self.email.send_verification_code(
            to_email=user.email,
            username=user.username,
            code=code,
            expires_minutes=self.settings.OTP_EXPIRY_MINUTES,
        )
        logger.info("verification_code_issued", user_id=user.id)

    async def _require_unverified(self, email: str) -> UserDocument:
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("Account not found", code="user_not_found")
        if user.is_verified:
            raise ConflictError("Email is already verified", code="already_verified")
        return user

    async def verify(self, email: str, code: str) -> UserDocument:
        """
        Verify an account's email with its one-time code.

        An expired code is purged and a new one is mailed before the error
        is raised.

        Raises:
            NotFoundError: no account for the email
            ConflictError: already verified
            ValidationError: wrong code, or the code expired
        """
        user = await self._require_unverified(email)

        records = await self.otps.list_for_user(user.id)
        if not records:
            raise ValidationError("Invalid verification code", code="invalid_code")

        current = records[0]
        if current.is_expired():
            logger.info("verification_code_expired", user_id=user.id)
            await self._issue_code(user)
            raise ValidationError(
                "Verification code has expired, a new code has been sent",
                code="code_expired",
            )

        if not self.hasher.verify(code, current.hashed_code):
            raise ValidationError("Invalid verification code", code="invalid_code")

        verified = await self.users.mark_verified(user.id)
        if verified is None:
            raise NotFoundError("Account not found", code="user_not_found")
        await self.otps.delete_for_user(user.id)

        logger.info("user_verified", user_id=user.id)
        return verified

    async def resend_verification(self, email: str) -> None:
        """Issue and mail a new code to an unverified account."""
        user = await self._require_unverified(email)
        await self._issue_code(user)

    # ========================================================================
    # Sessions
    # ========================================================================

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Exchange credentials for a session token.

        Raises:
            UnauthorizedError: unknown email or wrong password (indistinguishable)
            ForbiddenError: correct credentials but email not verified
        """
        user = await self.users.get_by_email(email)
        if user is None or not self.hasher.verify(password, user.hashed_password):
            logger.info("login_failed", email=mask_email(email))
            raise UnauthorizedError("Invalid email or password", code="invalid_credentials")

        if not user.is_verified:
            raise ForbiddenError("Email is not verified", code="email_not_verified")
        if not user.is_active:
            raise ForbiddenError("Account is disabled", code="account_disabled")

        await self.users.update_last_login(user.id)
        token = self.tokens.create_session_token(user.id)

        logger.info("user_logged_in", user_id=user.id)
        return LoginResult(access_token=token, user=user)

    def _decode(self, token: str) -> dict[str, Any]:
        payload = self.tokens.decode(token)
        if payload is None:
            raise UnauthorizedError("Could not validate credentials", code="invalid_token")
        return payload

    async def authenticate(self, token: str) -> UserDocument:
        """
        Resolve a session token to its active user.

        Raises:
            UnauthorizedError: invalid, revoked or orphaned token
        """
        payload = self._decode(token)

        jti = payload.get("jti")
        if jti and await self.revoked_tokens.is_revoked(jti):
            raise UnauthorizedError("Session has been revoked", code="token_revoked")

        user = await self.users.get_by_id(payload["sub"])
        if user is None or not user.is_active:
            raise UnauthorizedError("Could not validate credentials", code="invalid_token")
        return user

    async def logout(self, token: str) -> None:
        """Revoke the presented session token."""
        payload = self._decode(token)
        jti = payload.get("jti")
        if not jti:
            raise UnauthorizedError("Could not validate credentials", code="invalid_token")

        await self.revoked_tokens.revoke(jti, payload["sub"])
        logger.info("user_logged_out", user_id=payload["sub"])
