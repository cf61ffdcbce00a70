from datetime import datetime

import pytest

from contractor_hub.services.date_utils import format_long_date, parse_request_datetime
from contractor_hub.services.stages import (
    build_timeline, collapsed_timeline, is_valid_stage, stage_label, stage_progress
)


def _job(stage, start='2024-05-20T00:00:00', end='2024-06-15T00:00:00'):
    return {'stage': stage, 'start_date': start, 'end_date': end}


def _statuses(events):
    return {e['id']: e['status'] for e in events}


def test_stage_label_and_progress():
    assert stage_label('materials_ordered') == 'Materials Ordered'
    assert stage_label(None) == ''
    assert stage_progress('finishing') == 80
    assert stage_progress('demolition') == 0
    assert is_valid_stage('complete')
    assert not is_valid_stage('archived')


def test_timeline_for_job_in_progress():
    events = build_timeline(_job('in_progress'))

    assert [e['id'] for e in events] == [
        'quote_approved', 'contract_signed', 'materials_ordered',
        'work_in_progress', 'finishing_touches', 'project_complete',
    ]
    assert _statuses(events) == {
        'quote_approved': 'completed',
        'contract_signed': 'completed',
        'materials_ordered': 'completed',
        'work_in_progress': 'in-progress',
        'finishing_touches': 'upcoming',
        'project_complete': 'upcoming',
    }


def test_timeline_dates_are_offset_from_job_dates():
    events = {e['id']: e for e in build_timeline(_job('planning'))}

    assert events['quote_approved']['date'] == datetime(2024, 5, 5)
    assert events['work_in_progress']['date'] == datetime(2024, 5, 20)
    assert events['finishing_touches']['date'] == datetime(2024, 6, 8)
    assert events['project_complete']['date'] == datetime(2024, 6, 15)


def test_timeline_without_dates():
    events = build_timeline(_job('planning', start=None, end=None))
    assert all(e['date'] is None for e in events)
    assert _statuses(events)['materials_ordered'] == 'upcoming'


def test_complete_job_has_every_milestone_completed():
    events = build_timeline(_job('complete'))
    assert set(_statuses(events).values()) == {'completed'}


def test_collapsed_timeline_keeps_only_the_next_upcoming_milestone():
    events = collapsed_timeline(build_timeline(_job('in_progress')))
    assert [e['id'] for e in events] == [
        'quote_approved', 'contract_signed', 'materials_ordered',
        'work_in_progress', 'finishing_touches',
    ]


@pytest.mark.parametrize("value,expected", [
    ('2024-05-21', datetime(2024, 5, 21)),
    ('2024-05-21T10:00:00Z', datetime(2024, 5, 21, 10, 0)),
    ('2024-05-21T10:00:00+02:00', datetime(2024, 5, 21, 8, 0)),
    ('', None),
    (None, None),
])
def test_parse_request_datetime(value, expected):
    assert parse_request_datetime(value) == expected


def test_parse_request_datetime_rejects_garbage():
    with pytest.raises(ValueError):
        parse_request_datetime('next tuesday')


def test_format_long_date_does_not_shift_calendar_dates():
    assert format_long_date('2024-05-21T00:00:00') == 'May 21, 2024'
    assert format_long_date(datetime(2024, 6, 1)) == 'June 1, 2024'
    assert format_long_date(None) is None
