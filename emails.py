"""Transactional email: Jinja templates under templates/emails, sent with Resend."""
import logging

import requests
from flask import render_template

from ai_queue import is_retryable_error, with_retry

logger = logging.getLogger(__name__)

RESEND_URL = 'https://api.resend.com/emails'


class EmailService:
    def __init__(self, app=None):
        self.api_key = None
        self.sender = None
        self.reply_to = None
        self.app_url = ''
        self.otp_expiry_minutes = 10
        self.suppress = True
        self.max_retries = 3
        self.retry_delay = 5.0
        self.outbox = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        config = app.config
        self.api_key = config.get('RESEND_API_KEY')
        self.sender = config['EMAIL_FROM']
        self.reply_to = config.get('EMAIL_REPLY_TO')
        self.app_url = config['APP_URL'].rstrip('/')
        self.otp_expiry_minutes = config['OTP_EXPIRY_MINUTES']
        self.suppress = config.get('EMAIL_SUPPRESS_SEND') or not self.api_key
        self.retry_delay = 0.0 if app.testing else 5.0
        self.outbox = []
        app.extensions['email_service'] = self

    def url(self, path):
        return f'{self.app_url}{path}'

    def send(self, to, subject, html, text=None, tags=None):
        """Send one email; failures are reported in the result, never raised"""

        recipients = [to] if isinstance(to, str) else list(to)

        if self.suppress:
            logger.info('Email suppressed: %r to %s', subject, ', '.join(recipients))
            self.outbox.append({'to': recipients, 'subject': subject, 'html': html, 'text': text, 'tags': tags or {}})
            return {'success': True, 'message_id': None, 'error': None}

        payload = {
            'from': self.sender,
            'to': recipients,
            'subject': subject,
            'html': html,
        }
        if text:
            payload['text'] = text
        if self.reply_to:
            payload['reply_to'] = self.reply_to
        if tags:
            payload['tags'] = [{'name': k, 'value': str(v)} for k, v in tags.items()]

        def post():
            response = requests.post(
                RESEND_URL,
                json=payload,
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=15,
            )
            response.raise_for_status()
            return response.json()

        try:
            data = with_retry(
                post,
                max_retries=self.max_retries,
                initial_delay=self.retry_delay,
                retry_condition=is_retryable_error,
            )
        except (requests.RequestException, ValueError) as e:
            logger.error('Failed to send %r to %s: %s', subject, ', '.join(recipients), e)
            return {'success': False, 'message_id': None, 'error': str(e)}

        logger.info('Email sent: %r to %s', subject, ', '.join(recipients))
        return {'success': True, 'message_id': data.get('id'), 'error': None}

    def send_template(self, to, subject, template, tags=None, **context):
        context.setdefault('app_url', self.app_url)
        html = render_template(f'emails/{template}.html', subject=subject, **context)
        text = render_template(f'emails/{template}.txt', **context)
        return self.send(to, subject, html, text=text, tags=tags)

    # Templates

    def send_otp(self, email, code, user_type='client', purpose='login'):
        action = {
            'login': 'sign in to OneDesigner',
            'signup': 'finish creating your account',
        }.get(purpose, 'verify your email')
        return self.send_template(
            email, f'Your OneDesigner verification code: {code}', 'otp',
            tags={'type': 'otp', 'user_type': user_type},
            code=code, action=action, expiry_minutes=self.otp_expiry_minutes,
        )

    def send_welcome_client(self, client):
        return self.send_template(
            client.email, 'Welcome to OneDesigner', 'welcome_client',
            tags={'type': 'welcome'},
            name=client.name or 'there', dashboard_url=self.url('/client/dashboard'),
        )

    def send_designer_approved(self, designer):
        return self.send_template(
            designer.email, 'Your designer profile has been approved', 'designer_approved',
            tags={'type': 'designer-approved', 'designer_id': designer.id},
            name=designer.first_name or 'there', dashboard_url=self.url('/designer/dashboard'),
        )

    def send_designer_rejected(self, designer, reason):
        return self.send_template(
            designer.email, 'Update on your OneDesigner application', 'designer_rejected',
            tags={'type': 'designer-rejection', 'designer_id': designer.id},
            name=designer.first_name or 'there', reason=reason, login_url=self.url('/designer/login'),
        )

    def send_project_request(self, designer, brief, message):
        return self.send_template(
            designer.email, 'New project request from a OneDesigner client', 'project_request',
            tags={'type': 'project-request', 'designer_id': designer.id},
            name=designer.first_name or 'there', message=message, brief=brief,
            dashboard_url=self.url('/designer/dashboard'),
        )

    def send_project_request_reminder(self, designer, project_request, days_remaining, reminder_type):
        days = f'{days_remaining} day' if days_remaining == 1 else f'{days_remaining} days'
        urgency = 'Last day!' if days_remaining <= 1 else 'Time sensitive' if days_remaining <= 3 else 'Reminder'
        return self.send_template(
            designer.email, f'{urgency} {days} left to respond to a project request', 'project_request_reminder',
            tags={'type': 'project-request-reminder', 'reminder_type': reminder_type,
                  'request_id': project_request.id},
            name=designer.first_name or 'there', days_remaining=days_remaining, days=days,
            project_type=(project_request.brief_snapshot or {}).get('project_type'),
            message=project_request.message, dashboard_url=self.url('/designer/dashboard'),
        )

    def send_project_approved(self, client_email, designer):
        return self.send_template(
            client_email, f'{designer.first_name or "Your designer"} accepted your project request', 'project_approved',
            tags={'type': 'project-approved', 'designer_id': designer.id},
            designer_name=designer.full_name, designer_email=designer.email,
            designer_phone=designer.phone, designer_website=designer.website,
        )

    def send_project_rejected(self, client_email, designer, reason):
        return self.send_template(
            client_email, f'Project request update from {designer.first_name or "your designer"}', 'project_rejected',
            tags={'type': 'project-rejected', 'designer_id': designer.id},
            designer_name=designer.full_name, reason=reason, dashboard_url=self.url('/client/dashboard'),
        )

    def send_match_unlocked(self, designer, brief):
        return self.send_template(
            designer.email, 'A client unlocked your profile', 'match_unlocked',
            tags={'type': 'unlock', 'designer_id': designer.id},
            name=designer.first_name or 'there', brief=brief, dashboard_url=self.url('/designer/dashboard'),
        )

    def send_message_notification(self, email, recipient_name, sender_name, content, conversation_url):
        return self.send_template(
            email, f'New message from {sender_name}', 'message_notification',
            tags={'type': 'message'},
            name=recipient_name, sender_name=sender_name, preview=content[:280],
            conversation_url=conversation_url,
        )


email_service = EmailService()
