"""Due date status and wording for cards."""
from datetime import date, timedelta
from typing import Optional

from models import Task

SOON_DAYS = 3


def due_status(task: Task, today: Optional[date] = None) -> str:
    """One of "overdue", "today", "soon", "normal". Done tasks are always normal."""
    if task.due_date is None or task.column == 'done':
        return 'normal'
    today = today or date.today()
    if task.due_date < today:
        return 'overdue'
    if task.due_date == today:
        return 'today'
    if task.due_date <= today + timedelta(days=SOON_DAYS):
        return 'soon'
    return 'normal'


def format_due_date(due: Optional[date], today: Optional[date] = None) -> str:
    if due is None:
        return ''
    today = today or date.today()
    if due == today:
        return 'Today'
    if due == today + timedelta(days=1):
        return 'Tomorrow'
    label = f"{due.strftime('%b')} {due.day}"
    if due.year != today.year:
        label += f", {due.year}"
    return label


def format_relative(due: Optional[date], today: Optional[date] = None) -> str:
    if due is None:
        return ''
    days = (due - (today or date.today())).days
    if days == 0:
        return 'Today'
    if days == 1:
        return 'Tomorrow'
    if days == -1:
        return 'Yesterday'
    if days > 0:
        return f'in {days} days'
    return f'{-days} days ago'
