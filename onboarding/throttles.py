from rest_framework.throttling import AnonRateThrottle


class PublicSubmitThrottle(AnonRateThrottle):
    """Anonymous submissions and uploads; staff requests are not counted here."""
    scope = 'public_submit'
