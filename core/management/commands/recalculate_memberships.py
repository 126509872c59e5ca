from django.core.management.base import BaseCommand

from core.services.audit import log_action
from core.services.membership import get_membership_stats, recalculate_all_memberships


class Command(BaseCommand):
    help = "Recompute every customer's membership tier from this year's spending."

    def handle(self, *args, **options):
        counters = recalculate_all_memberships()
        log_action(user=None, action='membership_recalculate', object_type='user', detail=counters)
        self.stdout.write(
            f"updated={counters['updated']} upgraded={counters['upgraded']} "
            f"downgraded={counters['downgraded']} errors={counters['errors']}"
        )
        stats = get_membership_stats()
        self.stdout.write(f"Basic={stats['basic']} Loyal={stats['loyal']} VIP={stats['vip']} total={stats['total']}")
        style = self.style.WARNING if counters['errors'] else self.style.SUCCESS
        self.stdout.write(style("Membership recalculation finished."))
