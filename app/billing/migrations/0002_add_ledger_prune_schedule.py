"""
Add celery-beat schedule for pruning the webhook idempotency ledger.

This migration creates the periodic task schedule for the
prune_processed_webhook_events task, which runs once a day and deletes
ledger entries older than BILLING_WEBHOOK_RETENTION_DAYS.
"""

from django.db import migrations


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for pruning the ledger."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every day
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="days",
    )

    PeriodicTask.objects.get_or_create(
        name="Prune Processed Webhook Events",
        defaults={
            "task": "billing.tasks.prune_processed_webhook_events",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Deletes idempotency ledger entries older than the "
                "configured retention window."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name="Prune Processed Webhook Events",
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
