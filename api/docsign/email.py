import logging
import os
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("EMAIL_PORT", "587"))
SMTP_USER = os.getenv("EMAIL_USER")
SMTP_PASSWORD = os.getenv("EMAIL_PASSWORD")
DEFAULT_SENDER = os.getenv("EMAIL_SENDER", SMTP_USER or "noreply@example.com")
DEFAULT_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME", "DocSign")

_CARD_STYLE = (
    "max-width: 520px; margin: 0 auto; background: #ffffff; border-radius: 12px; "
    "padding: 24px; box-shadow: 0 10px 25px rgba(15,23,42,0.08);"
)

def format_sender_name(requester_name: str | None = None) -> str:
    base_label = (DEFAULT_SENDER_NAME or "DocSign").strip() or "DocSign"
    if requester_name:
        plain = requester_name.strip()
        if plain:
            return f"{plain} via {base_label}"
    return base_label

def send_email(
    to: str,
    subject: str,
    body: str,
    html_body: str | None = None,
    attachments: list | None = None,
    sender_name: str | None = None,
    reply_to: str | None = None,
):
    attachments = attachments or []
    display_name = (sender_name or DEFAULT_SENDER_NAME).strip()
    from_value = formataddr((display_name, DEFAULT_SENDER)) if display_name else DEFAULT_SENDER
    if not (SMTP_USER and SMTP_PASSWORD):
        logger.info(
            "EMAIL (stub) from=%s reply_to=%s to=%s subject=%r attachments=%d\n%s",
            from_value, reply_to or "(not set)", to, subject, len(attachments), body,
        )
        return
    msg = EmailMessage()
    msg["From"] = from_value
    if reply_to:
        msg["Reply-To"] = reply_to
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body or "")
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    for attachment in attachments:
        if not attachment or attachment.get("content") is None:
            continue
        msg.add_attachment(
            attachment["content"],
            maintype=attachment.get("maintype", "application"),
            subtype=attachment.get("subtype", "octet-stream"),
            filename=attachment.get("filename") or "attachment",
        )
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as smtp:
        smtp.starttls()
        smtp.login(SMTP_USER, SMTP_PASSWORD)
        smtp.send_message(msg)

def signing_request_message(
    recipient_name: str,
    role: str,
    document_name: str,
    link: str,
    owner_name: str,
    subject: str | None = None,
    message: str | None = None,
):
    action = "review and sign" if role == "signer" else "review"
    subject_line = (subject or "").strip() or f"Signature Requested: {document_name}"
    intro = (message or "").strip() or f"{owner_name} invited you to {action} this document."
    text_body = f"""Hi {recipient_name},

{owner_name} sent you a document to {action}.
Document: "{document_name}"

{intro}

Open document: {link}
"""
    link_html = escape(link)
    html_body = f"""
<html>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; background: #f5f6f8; padding: 24px;">
    <div style="{_CARD_STYLE}">
      <h2 style="margin-top: 0; font-size: 20px; color: #0f172a;">{escape(document_name)}</h2>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">
        {escape(owner_name)} sent you a document to {action}.
      </p>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">{escape(intro)}</p>
      <div style="margin: 24px 0;">
        <a href="{link_html}" style="display: inline-block; background: #2563eb; color: #fff; padding: 12px 24px; border-radius: 999px; text-decoration: none; font-weight: 600;">
          Open document
        </a>
      </div>
      <p style="font-size: 12px; color: #64748b;">If the button doesn&apos;t work, copy this link into your browser:<br /><a href="{link_html}">{link_html}</a></p>
    </div>
  </body>
</html>
"""
    return subject_line, text_body, html_body

def completion_message(document_name: str, sha256_final: str):
    subject = f"Completed: {document_name}"
    sha_line = f"Final SHA256: {sha256_final}"
    text_body = (
        f"All parties have finished signing {document_name}.\n\n"
        f"{sha_line}\n\nA copy of the executed PDF is attached for your records."
    )
    html_body = f"""
<html>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; background: #f5f6f8; padding: 24px;">
    <div style="{_CARD_STYLE}">
      <h2 style="margin-top: 0; font-size: 20px; color: #0f172a;">Completed</h2>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">
        All parties have finished signing <strong>{escape(document_name)}</strong>.
      </p>
      <p style="font-size: 13px; color: #475569; background: #f8fafc; padding: 12px 16px; border-radius: 8px;">
        {escape(sha_line)}
      </p>
      <p style="font-size: 13px; color: #475569;">A copy of the executed PDF is attached for your records.</p>
    </div>
  </body>
</html>
"""
    return subject, text_body, html_body
