import sendgrid
from sendgrid.helpers.mail import Mail, Email, To, Content
from typing import Optional, Dict
from config.config import Config
from casaora.utils.logger import get_logger
from casaora.utils.sanitization import sanitize_text

logger = get_logger(__name__)

STATUS_COPY = {
    'clear': (
        "Your background check is complete",
        "Good news: your background check came back clear. "
        "We will let you know as soon as the rest of your application is reviewed."
    ),
    'consider': (
        "Your background check needs review",
        "Your background check is complete and our team is reviewing a few details. "
        "We may contact you for more information."
    ),
    'suspended': (
        "Update on your background check",
        "We were unable to approve your application based on the background check results. "
        "Reply to this email if you believe this is a mistake."
    ),
}


class SendGridClient:
    """Wrapper for SendGrid email operations"""

    def __init__(self):
        self.api_key = Config.SENDGRID_API_KEY
        self.from_email = Config.SENDGRID_FROM_EMAIL

        if self.api_key:
            self.client = sendgrid.SendGridAPIClient(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("SendGrid API key not configured")

    def send_email(self, to_email: str, subject: str, html_content: str,
                   plain_content: str = None) -> Optional[Dict]:
        """Send email via SendGrid"""
        if not self.client:
            logger.error("SendGrid client not initialized")
            return None

        try:
            message = Mail(
                from_email=Email(self.from_email, "Casaora"),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            if plain_content:
                message.plain_text_content = Content("text/plain", plain_content)

            response = self.client.send(message)

            return {
                'status_code': response.status_code,
                'message_id': response.headers.get('X-Message-Id')
            }
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return None

    def send_admin_message(self, to_email: str, name: str, subject: str, sanitized_html: str) -> Optional[Dict]:
        """Send an admin broadcast; the body must already be sanitized"""
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <p>Hola {sanitize_text(name)},</p>
                {sanitized_html}
                <hr style="margin-top: 40px;">
                <p style="color: #666; font-size: 12px;">
                    You are receiving this message because you have a Casaora account.
                </p>
            </body>
        </html>
        """

        return self.send_email(to_email, subject, html_content)

    def send_background_check_completed_email(self, to_email: str, name: str, status: str,
                                              recommendation: str = None) -> Optional[Dict]:
        """Tell a professional their background check has settled"""
        subject, body = STATUS_COPY.get(status, STATUS_COPY['consider'])
        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>{sanitize_text(subject)}</h2>
                <p>Hola {sanitize_text(name)},</p>
                <p>{body}</p>
                <p style="margin: 30px 0;">
                    <a href="{Config.APP_URL}/dashboard/pro/onboarding"
                       style="background-color: #FF5200; color: white; padding: 14px 28px;
                              text-decoration: none; border-radius: 4px; display: inline-block;">
                        View application
                    </a>
                </p>
            </body>
        </html>
        """
        plain_content = f"Hola {name},\n\n{body}\n\n{Config.APP_URL}/dashboard/pro/onboarding"

        logger.info(f"Sending background check email ({status}, {recommendation}) to {to_email}")
        return self.send_email(to_email, subject, html_content, plain_content)
