import logging

import httpx

from app.exceptions.custom import RateLimitError, SendGridError

logger = logging.getLogger(__name__)

MAIL_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridService:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        from_email: str,
        from_name: str = "",
    ):
        self._client = client
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._from = {"email": from_email}
        if from_name:
            self._from["name"] = from_name

    async def send_email(
        self, to: str, subject: str, text: str, html: str | None = None
    ) -> str | None:
        """Send one message. Returns SendGrid's message id when it gives one."""
        content = [{"type": "text/plain", "value": text}]
        if html:
            content.append({"type": "text/html", "value": html})

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": self._from,
            "subject": subject,
            "content": content,
        }

        logger.info("Sending email to %s: %s", to, subject)
        resp = await self._client.post(MAIL_SEND_URL, json=payload, headers=self._headers)

        if resp.status_code == 429:
            raise RateLimitError("SendGrid")
        if resp.status_code >= 400:
            raise SendGridError(resp.text, status_code=resp.status_code)

        return resp.headers.get("X-Message-Id")
