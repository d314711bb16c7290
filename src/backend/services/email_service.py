"""
Email Service using Azure Communication Services.

Handles:
- Email verification codes for new accounts
"""

import asyncio
from typing import Any, Optional

import structlog

from core.config import Settings
from core.exceptions import DependencyError
from core.logging import mask_email

logger = structlog.get_logger(__name__)


class EmailService:
    """
    Email service using Azure Communication Services.

    Delivery failures are raised as ``DependencyError`` so the caller can
    report them to the user instead of silently dropping the message.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client: Any = None
        self._initialized = False
        self._sender_address: Optional[str] = None

    async def initialize(self) -> None:
        """Initialize the Azure Email client."""
        if self._initialized:
            return

        connection_string = self._settings.AZURE_COMMUNICATION_CONNECTION_STRING
        self._sender_address = self._settings.AZURE_EMAIL_SENDER_ADDRESS

        if not connection_string or not self._sender_address:
            logger.warning(
                "email_service_not_configured",
                has_connection_string=bool(connection_string),
                has_sender_address=bool(self._sender_address),
            )
            self._initialized = True
            return

        from azure.communication.email import EmailClient

        try:
            self._client = EmailClient.from_connection_string(connection_string)
            logger.info("email_service_initialized")
        except ValueError as e:
            logger.error("email_service_init_failed", error=str(e))
        self._initialized = True

    @property
    def is_available(self) -> bool:
        """Check if email service is available."""
        return self._client is not None and self._sender_address is not None

    async def send_verification_code(
        self,
        to_email: str,
        username: str,
        code: str,
        expires_minutes: int,
    ) -> None:
        """
        Send a one-time verification code.

        Args:
            to_email: Recipient email address
            username: User's display name
            code: The plain verification code
            expires_minutes: How long the code stays valid

        Raises:
            DependencyError: if the message could not be delivered
        """
        await self.initialize()

        if not self.is_available:
            logger.warning(
                "email_service_unavailable",
                action="verification",
                to_email=mask_email(to_email),
            )
            if self._settings.DEBUG:
                # Local development without a mail account
                logger.warning("verification_code_not_sent", to_email=mask_email(to_email), code=code)
                return
            raise DependencyError("Email delivery is not available", code="email_unavailable")

        app_name = self._settings.APP_NAME
        subject = f"Your {app_name} verification code"
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5;">
            <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 40px; box-shadow: 0 2px 4px rgba(0,0,0,0.1);">
                <h1 style="color: #1a1a1a; margin-bottom: 24px;">Welcome to {app_name}, {username}!</h1>

                <p style="color: #4a4a4a; line-height: 1.6;">
                    Enter the code below to verify your email address and finish signing up.
                </p>

                <p style="text-align: center; margin: 32px 0; font-size: 32px; font-weight: 700; letter-spacing: 8px; color: #1a1a1a;">
                    {code}
                </p>

                <p style="color: #6b7280; font-size: 14px; line-height: 1.6;">
                    This code expires in {expires_minutes} minutes.
                </p>

                <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 32px 0;">

                <p style="color: #9ca3af; font-size: 12px;">
                    If you didn't create a {app_name} account, you can safely ignore this email.
                </p>
            </div>
        </body>
        </html>
        """

        plain_text = f"""
Welcome to {app_name}, {username}!

Your verification code is: {code}

This code expires in {expires_minutes} minutes.

If you didn't create a {app_name} account, you can safely ignore this email.
        """.strip()

        sent = await self._send_email(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
        )
        if not sent:
            raise DependencyError("Could not send verification email", code="email_send_failed")

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        plain_text: str,
    ) -> bool:
        """
        Internal method to send an email.

        Returns:
            True if sent successfully
        """
        if not self._client or not self._sender_address:
            return False

        message = {
            "senderAddress": self._sender_address,
            "recipients": {
                "to": [{"address": to_email}],
            },
            "content": {
                "subject": subject,
                "plainText": plain_text,
                "html": html_content,
            },
        }

        try:
            poller = await asyncio.to_thread(self._client.begin_send, message)
            result = await asyncio.to_thread(poller.result)
        except Exception as e:
            logger.error("email_send_error", error=str(e), to=mask_email(to_email))
            return False

        if result["status"] == "Succeeded":
            logger.info(
                "email_sent",
                to=mask_email(to_email),
                subject=subject,
                message_id=result.get("id"),
            )
            return True

        logger.error(
            "email_send_failed",
            status=result["status"],
            error=result.get("error"),
        )
        return False
