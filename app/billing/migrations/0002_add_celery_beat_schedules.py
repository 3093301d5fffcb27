"""
Add the Celery Beat schedule for the expired listing sweep.
"""

from django.db import migrations

TASK_NAME = "Billing: Apply Expired Listing Fallback"


def create_periodic_tasks(apps, schema_editor):
    """Schedule the hourly expired listing sweep."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule_1hour, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "billing.tasks.apply_expired_listing_fallback",
            "interval": schedule_1hour,
            "enabled": True,
            "description": (
                "Moves approved listings whose paid plan has lapsed to the "
                "configured fallback package."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("billing", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
