# app/models/job_lock.py
from tortoise import fields, models


class JobLock(models.Model):
    """
    Non-overlap marker for scheduled jobs.
    - locked_until: a run holds the lock until it finishes or this time passes
      (a crashed run cannot block the job forever)
    - holder: free-form identity of the current holder (host/pid)
    """
    name = fields.CharField(max_length=64, pk=True)
    locked_until = fields.DatetimeField(null=True)
    holder = fields.CharField(max_length=128, null=True)
    last_started_at = fields.DatetimeField(null=True)
    last_finished_at = fields.DatetimeField(null=True)

    class Meta:
        table = "job_locks"
