from django.core.management.base import BaseCommand
from django.utils import timezone

from onboarding.services.broadcast import publish_refresh
from onboarding.services.onboarding import METRICS_CACHE_KEY, onboarding_metrics


class Command(BaseCommand):
    help = "Warm the onboarding metrics cache and broadcast a WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        onboarding_metrics(refresh=True)
        keys_refreshed = [METRICS_CACHE_KEY]
        publish_refresh(keys_refreshed)
        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
