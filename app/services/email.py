import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import logging
from markupsafe import escape

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class EmailService:
    @staticmethod
    async def send_email(to_email: str, subject: str, html_content: str) -> bool:
        """Send an email using SMTP."""
        if not settings.smtp_user or not settings.smtp_password:
            logger.warning("SMTP not configured, skipping email send")
            return False

        message = MIMEMultipart("alternative")
        message["From"] = settings.smtp_user
        message["To"] = to_email
        message["Subject"] = subject

        html_part = MIMEText(html_content, "html")
        message.attach(html_part)

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_user,
                password=settings.smtp_password,
                start_tls=True
            )
            return True
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            return False

    @staticmethod
    async def send_offer_received(
        to_email: str,
        event_name: str,
        listed_price: float,
        offer_amount: float,
        message: str = None
    ) -> bool:
        """Tell a seller that a buyer made an offer on their ticket."""
        # Listing and offer text is user input
        safe_event_name = escape(event_name)
        offers_url = f"{settings.frontend_url}/?tab=my-listings"
        message_block = ""
        if message:
            message_block = f'<p style="color: #1E3A8A;"><strong>Message:</strong> {escape(message)}</p>'

        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #4F46E5;">New offer on your ticket</h1>
            <h2 style="color: #1F2937; margin: 20px 0;">{safe_event_name}</h2>
            <div style="background-color: #F3F4F6; padding: 20px; border-radius: 8px; margin: 20px 0;">
                <p style="margin: 5px 0;"><strong>Listed price:</strong> ${listed_price:.2f}</p>
                <p style="margin: 5px 0;"><strong>Offer:</strong> ${offer_amount:.2f}</p>
            </div>
            {message_block}
            <p style="margin: 30px 0;">
                <a href="{offers_url}"
                   style="background-color: #4F46E5; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px;">
                    Review Offer
                </a>
            </p>
            <p>Best,<br>The {settings.app_name} Team</p>
        </body>
        </html>
        """

        return await EmailService.send_email(to_email, f"New offer for {event_name}", html_content)

    @staticmethod
    async def send_offer_resolved(
        to_email: str,
        event_name: str,
        offer_amount: float,
        approved: bool
    ) -> bool:
        """Tell a buyer whether the seller approved or denied their offer."""
        safe_event_name = escape(event_name)
        if approved:
            headline = "Your offer was approved!"
            body = "The seller accepted your offer. They will be in touch to arrange the transfer."
        else:
            headline = "Your offer was declined"
            body = "The seller declined your offer. The ticket is available again if you want to make a new one."

        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1 style="color: #4F46E5;">{headline}</h1>
            <h2 style="color: #1F2937; margin: 20px 0;">{safe_event_name}</h2>
            <p><strong>Your offer:</strong> ${offer_amount:.2f}</p>
            <p>{body}</p>
            <p>Best,<br>The {settings.app_name} Team</p>
        </body>
        </html>
        """

        subject = f"Offer {'approved' if approved else 'declined'}: {event_name}"
        return await EmailService.send_email(to_email, subject, html_content)
