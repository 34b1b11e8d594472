import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib
from fastapi import Request

from lastpiece.shared.utils import Settings

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "pending": "Your order is pending confirmation",
    "confirmed": "Your order has been confirmed",
    "processing": "Your order is being processed",
    "dispatched": "Your order has been dispatched",
    "in_transit": "Your order is in transit",
    "delivered": "Your order has been delivered",
    "cancelled": "Your order has been cancelled",
    "returned": "Your order has been returned",
}

BUTTON_STYLE = "background-color: {color}; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;"


class Mailer:
    """SMTP mail sender. Every send is best-effort: failures are logged and
    reported as False, never raised to the caller."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST)

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.configured:
            logger.info("SMTP not configured, skipping email", extra={"email": to})
            return False

        message = EmailMessage()
        message["From"] = f'"{self.settings.SENDER_NAME}" <{self.settings.SENDER_EMAIL}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.SMTP_HOST,
                port=self.settings.SMTP_PORT,
                username=self.settings.SMTP_USER,
                password=self.settings.SMTP_PASS,
                start_tls=self.settings.SMTP_PORT == 587,
                timeout=10,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("Email error", extra={"email": to})
            return False
        return True

    async def send_email_verification(self, email: str, token: str) -> bool:
        url = f"{self.settings.FRONTEND_URL}/verify-email?token={token}"
        html = f"""
            <h2>Welcome to Last Piece!</h2>
            <p>Please verify your email to complete your registration.</p>
            <a href="{url}" style="{BUTTON_STYLE.format(color='#007bff')}">Verify Email</a>
            <p style="margin-top: 20px; color: #666;">Or copy this link: {url}</p>
            <p style="color: #999; font-size: 12px;">This link will expire in 24 hours.</p>
        """
        return await self.send(email, "Verify Your Email - Last Piece", html)

    async def send_password_reset(self, email: str, token: str) -> bool:
        url = f"{self.settings.FRONTEND_URL}/reset-password?token={token}"
        html = f"""
            <h2>Password Reset Request</h2>
            <p>Click the link below to reset your password:</p>
            <a href="{url}" style="{BUTTON_STYLE.format(color='#28a745')}">Reset Password</a>
            <p style="margin-top: 20px; color: #666;">Or copy this link: {url}</p>
            <p style="color: #999; font-size: 12px;">This link will expire in 1 hour.</p>
            <p style="color: #999; font-size: 12px;">If you didn't request this, please ignore this email.</p>
        """
        return await self.send(email, "Reset Your Password - Last Piece", html)

    async def send_order_confirmation(self, email: str, order: dict) -> bool:
        first_name = (order.get("billing_address") or {}).get("first_name") or ""
        estimated: Optional[str] = None
        if order.get("shipping", {}).get("estimated_delivery"):
            estimated = order["shipping"]["estimated_delivery"].strftime("%Y-%m-%d")
        html = f"""
            <h2>Order Confirmed!</h2>
            <p>Thank you for your order, {first_name}!</p>
            <p><strong>Order Number:</strong> {order['order_number']}</p>
            <p><strong>Total Amount:</strong> ${order['pricing']['total']:.2f}</p>
            {f'<p><strong>Estimated Delivery:</strong> {estimated}</p>' if estimated else ''}
            <a href="{self.settings.FRONTEND_URL}/orders/{order['_id']}" style="{BUTTON_STYLE.format(color='#007bff')}">
                View Order Details
            </a>
        """
        return await self.send(email, f"Order Confirmation - {order['order_number']}", html)

    async def send_order_status_update(self, email: str, order: dict, status: str) -> bool:
        tracking = (order.get("shipping") or {}).get("tracking_number")
        html = f"""
            <h2>Order Status Update</h2>
            <p>{STATUS_MESSAGES.get(status, 'Your order status has been updated')}</p>
            <p><strong>Order Number:</strong> {order['order_number']}</p>
            {f'<p><strong>Tracking Number:</strong> {tracking}</p>' if tracking else ''}
            <a href="{self.settings.FRONTEND_URL}/orders/{order['_id']}" style="{BUTTON_STYLE.format(color='#007bff')}">
                Track Order
            </a>
        """
        return await self.send(email, f"Order Status Update - {order['order_number']}", html)


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
