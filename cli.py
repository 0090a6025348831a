"""Maintenance commands, run with ``flask --app app <command>``."""
import logging
import random

import click

from emails import email_service
from models import (AuthToken, Brief, Client, Designer, Match, MatchUnlock, Message, Payment,
                    ProjectRequest, db, utcnow)
from otp import cleanup_expired_tokens

logger = logging.getLogger(__name__)

# Project requests: first reminder from day 4, final from day 6, expired at day 7
FIRST_REMINDER_DAY = 4
FINAL_REMINDER_DAY = 6
REQUEST_EXPIRY_DAYS = 7

# Deletion order respects foreign keys
TABLES = [Message, ProjectRequest, MatchUnlock, Payment, Match, Brief, AuthToken, Designer, Client]

SAMPLE_NAMES = [('Maya', 'Chen'), ('Lucas', 'Moreau'), ('Aisha', 'Khan'), ('Diego', 'Santos'),
                ('Hana', 'Sato'), ('Oliver', 'Brooks'), ('Leila', 'Haddad'), ('Jonas', 'Berg')]
SAMPLE_CITIES = [('Berlin', 'Germany', 'Europe/Berlin'), ('Lisbon', 'Portugal', 'Europe/Lisbon'),
                 ('Toronto', 'Canada', 'America/Toronto'), ('Dubai', 'UAE', 'Asia/Dubai')]
SAMPLE_STYLES = ['minimal', 'modern', 'playful', 'corporate', 'bold', 'elegant', 'technical']
SAMPLE_INDUSTRIES = ['SaaS', 'Fintech', 'E-commerce', 'Healthcare', 'Education', 'Gaming']
SAMPLE_PROJECT_TYPES = ['Web design', 'Mobile app', 'Branding', 'Dashboard', 'Landing page']


def seed_designers(count, rng=None):
    """Insert approved sample designers and return them"""

    rng = rng or random.Random()
    offset = Designer.query.count()
    created = []
    for i in range(count):
        first, last = SAMPLE_NAMES[(offset + i) % len(SAMPLE_NAMES)]
        city, country, tz = rng.choice(SAMPLE_CITIES)
        designer = Designer(
            email=f'{first.lower()}.{last.lower()}+{offset + i}@example.com',
            first_name=first,
            last_name=last,
            last_initial=last[0],
            title=f'{rng.choice(SAMPLE_PROJECT_TYPES)} Designer',
            bio=f'{first} designs products for early-stage teams.',
            city=city,
            country=country,
            timezone=tz,
            years_experience=rng.randint(1, 12),
            rating=round(rng.uniform(3.8, 5.0), 1),
            total_projects=rng.randint(3, 80),
            styles=rng.sample(SAMPLE_STYLES, 3),
            industries=rng.sample(SAMPLE_INDUSTRIES, 2),
            project_types=rng.sample(SAMPLE_PROJECT_TYPES, 2),
            availability='available',
            is_verified=True,
            is_approved=True,
            status='approved',
            approved_at=utcnow(),
        )
        db.session.add(designer)
        created.append(designer)
    db.session.commit()
    return created


def send_reminders(now=None):
    """Remind designers about unanswered project requests and expire stale ones.

    Returns ``(sent, expired)``. A reminder timestamp is only recorded when
    the email went out, so a failed send is retried on the next run.
    """

    now = now or utcnow()
    sent = expired = 0
    pending = (ProjectRequest.query
               .filter_by(status='pending')
               .order_by(ProjectRequest.created_at.asc())
               .all())

    for row in pending:
        days = (now - row.created_at).days
        if days >= REQUEST_EXPIRY_DAYS:
            row.status = 'expired'
            row.expired_at = now
            expired += 1
            logger.info('Expired project request %s after %d days', row.id, days)
            continue

        if days >= FINAL_REMINDER_DAY:
            reminder_type, column = 'final', 'final_reminder_sent_at'
        elif days >= FIRST_REMINDER_DAY:
            reminder_type, column = 'first', 'first_reminder_sent_at'
        else:
            continue
        if getattr(row, column) is not None:
            continue

        designer = row.designer
        if designer is None or not designer.email:
            logger.warning('No designer email for project request %s', row.id)
            continue

        result = email_service.send_project_request_reminder(
            designer, row, REQUEST_EXPIRY_DAYS - days, reminder_type)
        if result['success']:
            setattr(row, column, now)
            sent += 1
            logger.info('Sent %s reminder for project request %s', reminder_type, row.id)
        else:
            logger.error('Failed to send reminder for project request %s: %s', row.id, result.get('error'))

    db.session.commit()
    return sent, expired


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Database initialized.')

    @app.cli.command('seed-designers')
    @click.option('--count', default=5, show_default=True, help='Number of designers to create.')
    def seed_designers_command(count):
        """Insert approved sample designers."""
        created = seed_designers(count)
        click.echo(f'Created {len(created)} designers.')

    @app.cli.command('approve-designers')
    def approve_designers():
        """Approve and verify every pending designer."""
        pending = Designer.query.filter_by(status='pending').all()
        for designer in pending:
            designer.is_approved = True
            designer.is_verified = True
            designer.status = 'approved'
            designer.approved_at = utcnow()
        db.session.commit()
        click.echo(f'Approved {len(pending)} designers.')

    @app.cli.command('cleanup-tokens')
    def cleanup_tokens():
        """Delete expired and used login codes."""
        removed = cleanup_expired_tokens()
        click.echo(f'Removed {removed} tokens.')

    @app.cli.command('expire-matches')
    def expire_matches():
        """Mark pending matches past their expiry as expired."""
        expired = Match.query.filter(
            Match.status == 'pending',
            Match.expires_at.isnot(None),
            Match.expires_at < utcnow(),
        ).update({'status': 'expired'}, synchronize_session=False)
        db.session.commit()
        logger.info('Expired %d matches', expired)
        click.echo(f'Expired {expired} matches.')

    @app.cli.command('db-counts')
    def db_counts():
        """Print row counts per table."""
        for model in TABLES:
            click.echo(f'{model.__tablename__}: {model.query.count()}')

    @app.cli.command('cleanup-data')
    @click.option('--yes', is_flag=True, help='Confirm deleting every row.')
    def cleanup_data(yes):
        """Delete all clients, designers and their data."""
        if not yes:
            raise click.UsageError('This deletes ALL data. Re-run with --yes to confirm.')
        for model in TABLES:
            removed = model.query.delete()
            click.echo(f'{model.__tablename__}: deleted {removed}')
        db.session.commit()
        click.echo('Cleanup complete.')

    @app.cli.command('send-reminders')
    def send_reminders_command():
        """Remind designers about pending project requests and expire old ones."""
        sent, expired = send_reminders()
        click.echo(f'Sent {sent} reminders, expired {expired} requests.')
