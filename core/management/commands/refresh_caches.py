from django.conf import settings
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import Branch
from core.realtime.consumers import broadcast
from core.services.reports import STATS_TYPES
from core.views.manager import appointments_payload, products_payload, ratings_payload, revenue_payload


class Command(BaseCommand):
    help = "Warm the manager statistics caches; broadcast WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        ttl = settings.PETCARE_STATS_CACHE_SECONDS
        keys_refreshed = []

        for kind in STATS_TYPES:
            ck = f'stats:revenue:{kind}'
            cache.set(ck, revenue_payload(kind), ttl)
            keys_refreshed.append(ck)

        cache.set('stats:appointments:all', appointments_payload(), ttl)
        cache.set('stats:products:all', products_payload(), ttl)
        cache.set('stats:ratings', ratings_payload(), ttl)
        keys_refreshed += ['stats:appointments:all', 'stats:products:all', 'stats:ratings']

        # per branch variants
        for branch in Branch.objects.order_by('id'):
            for prefix, build in (('stats:appointments', appointments_payload), ('stats:products', products_payload)):
                ck = f'{prefix}:{branch.id}'
                cache.set(ck, build(branch), ttl)
                keys_refreshed.append(ck)

        broadcast({"type": "broadcast.refresh", "version": int(now.timestamp()), "ts": now.isoformat(),
                   "keys": keys_refreshed[:50]})

        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
