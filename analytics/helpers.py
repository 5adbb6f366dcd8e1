from datetime import timedelta

from django.db.models import Count, Q
from django.db.models.functions import TruncDate
from django.utils import timezone

from quiz_sessions.models import QuizSession, SessionResult, STATUS_STARTED, STATUS_COMPLETED

COMPLETIONS_WINDOW_DAYS = 30


def funnel_counts(quiz_id):
    """Viewed, started, completed and lead counts gathered in a single aggregate query."""
    counts = QuizSession.objects.filter(quiz_id=quiz_id).aggregate(
        viewed=Count('id'),
        started=Count('id', filter=Q(status__in=[STATUS_STARTED, STATUS_COMPLETED])),
        completed=Count('id', filter=Q(status=STATUS_COMPLETED)),
        leads=Count('id', filter=Q(is_lead=True)),
    )
    return {key: counts[key] or 0 for key in ('viewed', 'started', 'completed', 'leads')}


def completions_by_date(quiz_id, days=COMPLETIONS_WINDOW_DAYS):
    since = timezone.now() - timedelta(days=days)
    rows = (
        QuizSession.objects
        .filter(quiz_id=quiz_id, status=STATUS_COMPLETED, completed_at__gte=since)
        .annotate(date=TruncDate('completed_at'))
        .values('date')
        .annotate(count=Count('id'))
        .order_by('date')
    )
    return [{'date': row['date'].isoformat(), 'count': row['count']} for row in rows]


def result_distribution(quiz_id):
    rows = (
        SessionResult.objects
        .filter(is_primary=True, session__quiz_id=quiz_id, session__status=STATUS_COMPLETED)
        .values('result_id', 'result__title')
        .annotate(count=Count('id'))
        .order_by('-count', 'result__title')
    )
    return [{'result': row['result__title'] or 'Unknown', 'count': row['count']} for row in rows]


def conversion_rate(funnel):
    if funnel['viewed'] == 0:
        return 0
    return funnel['completed'] / funnel['viewed'] * 100


def quiz_analytics(quiz_id):
    funnel = funnel_counts(quiz_id)
    return {
        'funnel': funnel,
        'completionsByDate': completions_by_date(quiz_id),
        'resultDistribution': result_distribution(quiz_id),
        'totalSessions': funnel['viewed'],
        'conversionRate': conversion_rate(funnel),
    }
