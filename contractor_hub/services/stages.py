# contractor_hub/services/stages.py
"""
Job stage vocabulary and the views derived from it.

Stages move planning -> materials_ordered -> in_progress -> finishing ->
complete, but nothing enforces that order: a job may be set back to an
earlier stage.
"""

from datetime import timedelta

from .date_utils import parse_request_datetime

STAGES = ('planning', 'materials_ordered', 'in_progress', 'finishing', 'complete')

STAGE_PROGRESS = {
    'planning': 10,
    'materials_ordered': 30,
    'in_progress': 50,
    'finishing': 80,
    'complete': 100,
}


def is_valid_stage(stage):
    return stage in STAGES


def stage_progress(stage):
    """Progress-bar percentage for a stage; 0 for anything unrecognised."""
    return STAGE_PROGRESS.get(stage, 0)


def stage_label(stage):
    """'materials_ordered' -> 'Materials Ordered'"""
    if not stage:
        return ''
    return ' '.join(word[:1].upper() + word[1:] for word in stage.split('_'))


# (id, title, description, stages at which the milestone counts as done,
#  stage at which it is current, date anchor, day offset)
_MILESTONES = (
    ('quote_approved', 'Quote Approved', 'Project quote approved by client.',
     STAGES, None, 'start_date', -15),
    ('contract_signed', 'Contract Signed', 'Contract signed and initial payment received.',
     STAGES, None, 'start_date', -10),
    ('materials_ordered', 'Materials Ordered', 'Materials ordered for the project.',
     ('materials_ordered', 'in_progress', 'finishing', 'complete'), 'materials_ordered', 'start_date', -7),
    ('work_in_progress', 'Work In Progress', 'Construction work has begun.',
     ('in_progress', 'finishing', 'complete'), 'in_progress', 'start_date', 0),
    ('finishing_touches', 'Finishing Touches', 'Final details and finishing work.',
     ('finishing', 'complete'), 'finishing', 'end_date', -7),
    ('project_complete', 'Project Complete', 'Construction completed and final inspection done.',
     ('complete',), 'complete', 'end_date', 0),
)


def _milestone_date(job, anchor, offset_days):
    value = job.get(anchor)
    if not value:
        return None
    try:
        dt = parse_request_datetime(value)
    except ValueError:
        return None
    return dt + timedelta(days=offset_days)


def build_timeline(job):
    """
    Milestones for a job dict, each with a status of 'completed',
    'in-progress' or 'upcoming' derived from the job's stage.
    """
    stage = job.get('stage')
    events = []
    for event_id, title, description, done_in, current_in, anchor, offset in _MILESTONES:
        completed = stage in done_in
        current = stage == current_in
        if current and stage != 'complete':
            status = 'in-progress'
        elif completed:
            status = 'completed'
        else:
            status = 'upcoming'
        events.append({
            'id': event_id,
            'title': title,
            'description': description,
            'date': _milestone_date(job, anchor, offset),
            'completed': completed,
            'current': current,
            'status': status,
        })
    return events


def collapsed_timeline(events):
    """Completed and current milestones plus the next upcoming one."""
    next_index = next(
        (i for i, e in enumerate(events) if not e['completed'] and not e['current']),
        None
    )
    return [
        e for i, e in enumerate(events)
        if e['completed'] or e['current'] or i == next_index
    ]
