"""Négocios (tenants) et abonnements plateforme."""
from app.models.tenants.tenant import Tenant
from app.models.tenants.subscription_payment import SubscriptionPayment

__all__ = ["Tenant", "SubscriptionPayment"]
