"""
Transactional Email Service

Delivers task emails through a transactional email API. The provider is
selected by ``EMAIL_PROVIDER``:

- Resend (default)
- SendGrid
- Mailgun

Providers never raise on delivery errors; they return a result dict with
``success`` and either ``message_id`` or ``error``.
"""

import os
import re
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailProvider(Enum):
    """Supported email service providers."""
    RESEND = "resend"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"


class TransactionalEmailConfig:
    """Email settings read from the environment."""

    def __init__(self):
        self.provider = EmailProvider(os.getenv('EMAIL_PROVIDER', 'resend').lower())

        self.from_email = os.getenv('FROM_EMAIL', 'noreply@revium.local')
        self.from_name = os.getenv('FROM_NAME', os.getenv('COMPANY_NAME', 'Revium ERP'))
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')

        self.resend_api_key = os.getenv('RESEND_API_KEY', '')
        self.sendgrid_api_key = os.getenv('SENDGRID_API_KEY', '')
        self.mailgun_api_key = os.getenv('MAILGUN_API_KEY', '')
        self.mailgun_domain = os.getenv('MAILGUN_DOMAIN', '')

        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR') or str(DEFAULT_TEMPLATE_DIR)

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>"

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors = []
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.provider == EmailProvider.RESEND and not self.resend_api_key:
            errors.append("RESEND_API_KEY is required for Resend provider")
        elif self.provider == EmailProvider.SENDGRID and not self.sendgrid_api_key:
            errors.append("SENDGRID_API_KEY is required for SendGrid provider")
        elif self.provider == EmailProvider.MAILGUN:
            if not self.mailgun_api_key:
                errors.append("MAILGUN_API_KEY is required for Mailgun provider")
            if not self.mailgun_domain:
                errors.append("MAILGUN_DOMAIN is required for Mailgun provider")
        return errors

    def is_configured(self) -> bool:
        return not self.validate()


class ResendEmailService:
    name = "resend"

    def __init__(self, config: TransactionalEmailConfig):
        import resend
        resend.api_key = config.resend_api_key
        self.client = resend
        self.config = config

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        payload = {
            "from": self.config.sender,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            payload["text"] = text_content
        if self.config.reply_to_email:
            payload["reply_to"] = self.config.reply_to_email
        try:
            result = self.client.Emails.send(payload)
        except Exception as e:
            return {'success': False, 'provider': self.name, 'error': str(e)}
        return {'success': True, 'provider': self.name, 'message_id': result.get('id', '')}


class SendGridEmailService:
    name = "sendgrid"

    def __init__(self, config: TransactionalEmailConfig):
        from sendgrid import SendGridAPIClient
        self.client = SendGridAPIClient(api_key=config.sendgrid_api_key)
        self.config = config

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        try:
            from sendgrid.helpers.mail import Mail, From, To, PlainTextContent

            mail = Mail(
                from_email=From(self.config.from_email, self.config.from_name),
                to_emails=To(to_email),
                subject=subject,
                html_content=html_content,
            )
            if text_content:
                mail.plain_text_content = PlainTextContent(text_content)
            if self.config.reply_to_email:
                mail.reply_to = self.config.reply_to_email
            response = self.client.send(mail)
        except Exception as e:
            return {'success': False, 'provider': self.name, 'error': str(e)}
        return {
            'success': True,
            'provider': self.name,
            'message_id': response.headers.get('X-Message-Id', ''),
            'status_code': response.status_code,
        }


class MailgunEmailService:
    name = "mailgun"

    def __init__(self, config: TransactionalEmailConfig):
        import requests
        self.requests = requests
        self.config = config
        self.base_url = f"https://api.mailgun.net/v3/{config.mailgun_domain}"

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        data = {
            "from": self.config.sender,
            "to": to_email,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            data["text"] = text_content
        if self.config.reply_to_email:
            data["h:Reply-To"] = self.config.reply_to_email
        try:
            response = self.requests.post(
                f"{self.base_url}/messages",
                auth=("api", self.config.mailgun_api_key),
                data=data,
                timeout=15,
            )
        except Exception as e:
            return {'success': False, 'provider': self.name, 'error': str(e)}
        if response.status_code != 200:
            return {'success': False, 'provider': self.name, 'error': f"HTTP {response.status_code}: {response.text}"}
        return {'success': True, 'provider': self.name, 'message_id': response.json().get('id', '')}


_PROVIDERS = {
    EmailProvider.RESEND: ResendEmailService,
    EmailProvider.SENDGRID: SendGridEmailService,
    EmailProvider.MAILGUN: MailgunEmailService,
}


class TransactionalEmailService:
    """Renders templates and delegates delivery to the configured provider."""

    def __init__(self, config: Optional[TransactionalEmailConfig] = None):
        self.config = config or TransactionalEmailConfig()
        self.provider_service = None
        self._setup_provider()
        self.template_env = self._setup_templates()

    def _setup_provider(self):
        problems = self.config.validate()
        if problems:
            logger.warning("Email service not configured: %s", "; ".join(problems))
            return
        try:
            self.provider_service = _PROVIDERS[self.config.provider](self.config)
            logger.info("Initialized %s email service", self.config.provider.value)
        except Exception as e:
            logger.error("Failed to initialize email provider %s: %s", self.config.provider.value, e)

    def _setup_templates(self) -> Environment:
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning("Email template directory not found: %s", template_path)
        return Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        )

    @property
    def is_configured(self) -> bool:
        return self.provider_service is not None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send one email; returns the provider result dict."""
        if not self.provider_service:
            return {'success': False, 'error': 'Email service not configured or initialization failed'}
        try:
            result = await self.provider_service.send_email(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
            )
        except Exception as e:
            logger.error("Email service error sending to %s", to_email, exc_info=True)
            return {'success': False, 'error': f"Email service error: {e}"}
        if result['success']:
            logger.info("Email sent to %s via %s", to_email, result['provider'])
        else:
            logger.error("Email to %s failed: %s", to_email, result.get('error'))
        return result

    def render_template(self, template_name: str, context: Dict[str, Any]) -> tuple[str, str]:
        """
        Render ``<name>.html`` and, when present, ``<name>.txt``.

        Returns:
            Tuple of (html_content, text_content). Without a text template the
            text part is derived from the HTML.
        """
        html_content = self.template_env.get_template(f"{template_name}.html").render(**context)
        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text_content = self._html_to_text(html_content)
        return html_content, text_content

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        text = re.sub(r'<(style|script)[^>]*>.*?</\1>', '', html_content, flags=re.S | re.I)
        text = re.sub(r'<[^>]+>', ' ', text)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
        text = text.replace('&quot;', '"').replace('&#39;', "'")
        return re.sub(r'\s+', ' ', text).strip()


_email_service = None


def get_transactional_email_service() -> TransactionalEmailService:
    """Get singleton transactional email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = TransactionalEmailService()
    return _email_service


def reset_transactional_email_service_for_tests() -> None:
    global _email_service
    _email_service = None
