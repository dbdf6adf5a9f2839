"""Booking confirmation email over SMTP.

Delivery is best effort: ``ConfirmationNotifier.notify`` waits a bounded
time for the send and reports success as a bool. It never raises, so a
committed booking is never undone by a mail failure.
"""

import logging
import smtplib
import ssl
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from html import escape

from clinic_api.booking.dates import parse_date, to_minutes, weekday_name_for
from clinic_api.core import config

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)
SEND_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0


class EmailDeliveryError(Exception):
    pass


@dataclass(frozen=True)
class ConfirmationDetails:
    full_name: str
    email: str
    appointment_date: str
    start_time: str
    service_name: str


def format_date_for_display(value: str) -> str:
    day = parse_date(value)
    return f'{weekday_name_for(day)}, {MONTH_NAMES[day.month - 1]} {day.day}, {day.year}'


def format_time_for_display(value: str) -> str:
    hours, minutes = divmod(to_minutes(value), 60)
    period = 'PM' if hours >= 12 else 'AM'
    return f'{hours % 12 or 12}:{minutes:02d} {period}'


def build_confirmation_message(details: ConfirmationDetails) -> EmailMessage:
    display_date = format_date_for_display(details.appointment_date)
    display_time = format_time_for_display(details.start_time)

    message = EmailMessage()
    message['Subject'] = 'Your Appointment Confirmation'
    message['From'] = formataddr((config.EMAIL_FROM_NAME, config.EMAIL_USER))
    message['To'] = details.email
    message['Message-ID'] = make_msgid()
    message.set_content(
        '\n'.join([
            'APPOINTMENT CONFIRMATION',
            '',
            f'Hello {details.full_name},',
            '',
            'Your appointment is confirmed.',
            '',
            f'Service: {details.service_name}',
            f'Date: {display_date}',
            f'Time: {display_time}',
            '',
            'If you need to reschedule, contact us at least 24 hours in advance.',
            '',
            f'- {config.EMAIL_FROM_NAME}',
            '(This is an automated message)',
        ])
    )
    message.add_alternative(
        f"""\
<div style="font-family: Arial; padding: 20px; max-width: 600px;">
  <h2>Appointment Confirmation</h2>
  <p>Hello <strong>{escape(details.full_name)}</strong>,</p>
  <p>Your appointment is confirmed. Please find the details below:</p>
  <p><strong>Service:</strong> {escape(details.service_name)}<br>
     <strong>Date:</strong> {escape(display_date)}<br>
     <strong>Time:</strong> {escape(display_time)}</p>
  <p>For changes, contact us 24 hours in advance.</p>
  <p style="font-size: 12px; color: #888;">This is an automated message. Please do not reply.</p>
</div>
""",
        subtype='html',
    )
    return message


def _open_connection(timeout: float) -> smtplib.SMTP:
    context = ssl.create_default_context()
    if config.EMAIL_SECURE:
        return smtplib.SMTP_SSL(config.EMAIL_HOST, config.EMAIL_PORT, timeout=timeout, context=context)

    server = smtplib.SMTP(config.EMAIL_HOST, config.EMAIL_PORT, timeout=timeout)
    server.starttls(context=context)
    return server


def _remaining(deadline: float | None) -> float:
    if deadline is None:
        return config.EMAIL_TIMEOUT_SECONDS
    return min(config.EMAIL_TIMEOUT_SECONDS, deadline - time.monotonic())


def send_confirmation(details: ConfirmationDetails, deadline: float | None = None) -> str:
    """Send the confirmation and return its Message-ID.

    ``deadline`` is a ``time.monotonic()`` value. Socket timeouts shrink to
    fit it, and once it passes no further attempt is made and the message is
    not handed to the server.

    Raises EmailDeliveryError when SMTP is not configured, the deadline
    passes or every attempt fails.
    """
    missing = [
        name for name, value in (
            ('EMAIL_HOST', config.EMAIL_HOST),
            ('EMAIL_USER', config.EMAIL_USER),
            ('EMAIL_PASS', config.EMAIL_PASS),
        ) if not value
    ]
    if missing:
        raise EmailDeliveryError(f'Missing email configuration: {", ".join(missing)}')

    message = build_confirmation_message(details)
    last_error: Exception | None = None

    for attempt in range(1, SEND_ATTEMPTS + 1):
        if _remaining(deadline) <= 0:
            raise EmailDeliveryError('Confirmation deadline passed before sending.') from last_error
        try:
            with _open_connection(_remaining(deadline)) as server:
                server.login(config.EMAIL_USER, config.EMAIL_PASS)
                if _remaining(deadline) <= 0:
                    raise EmailDeliveryError('Confirmation deadline passed before sending.')
                server.send_message(message)
            logger.info('Confirmation email sent, message id %s.', message['Message-ID'])
            return message['Message-ID']
        except (smtplib.SMTPException, OSError) as exc:
            last_error = exc
            logger.warning('Email send attempt %s of %s failed: %s', attempt, SEND_ATTEMPTS, exc)
            if attempt < SEND_ATTEMPTS and _remaining(deadline) > RETRY_DELAY_SECONDS:
                time.sleep(RETRY_DELAY_SECONDS)

    raise EmailDeliveryError('Failed to send confirmation email.') from last_error


class ConfirmationNotifier:
    """Runs ``sender(details, deadline)`` on a worker thread with a bounded wait.

    The deadline handed to the sender matches the wait, so a send reported
    as failed is not delivered later. Jobs still queued at the timeout are
    cancelled.
    """

    def __init__(self, sender=send_confirmation, timeout: float | None = None, max_workers: int = 4):
        self._sender = sender
        self._timeout = config.EMAIL_TIMEOUT_SECONDS if timeout is None else timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='confirmation-email')

    def notify(self, details: ConfirmationDetails) -> bool:
        deadline = time.monotonic() + self._timeout
        future = self._executor.submit(self._sender, details, deadline)
        try:
            future.result(timeout=self._timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning('Confirmation email timed out after %ss; booking kept.', self._timeout)
            return False
        except Exception:
            logger.exception('Confirmation email failed; booking kept.')
            return False
        return True

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
