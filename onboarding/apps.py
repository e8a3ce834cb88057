from django.apps import AppConfig
from django.conf import settings


class OnboardingConfig(AppConfig):
    name = "onboarding"
    verbose_name = "Partner onboarding"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        # Refuse to start with an inconsistent scoring policy.
        from onboarding.services.scoring import validate_policy

        policy = settings.ONBOARDING
        validate_policy(
            policy["EVALUATION_WEIGHTS"],
            approve=policy["APPROVE_THRESHOLD"],
            review=policy["REVIEW_THRESHOLD"],
        )
