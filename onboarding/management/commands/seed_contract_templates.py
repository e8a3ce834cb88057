from django.core.management.base import BaseCommand
from django.template.loader import get_template

from onboarding.models import ContractTemplate

DEFAULT_NAME = "Standard Partnership Agreement"


class Command(BaseCommand):
    help = "Create the standard partnership template from the built-in contract body (idempotent)."

    def handle(self, *args, **options):
        if ContractTemplate.objects.filter(name=DEFAULT_NAME).exists():
            self.stdout.write(f"exists: {DEFAULT_NAME}")
            return
        source = get_template("onboarding/contracts/default.txt").template.source
        # stored templates get the filter library loaded when rendered
        source = source.replace("{% load contract_filters %}", "", 1)
        ContractTemplate.objects.create(
            name=DEFAULT_NAME,
            template_type="PARTNERSHIP",
            description="Operator standard terms for partner hospitals.",
            content=source,
        )
        self.stdout.write(self.style.SUCCESS(f"created: {DEFAULT_NAME}"))
