"""Facturation plateforme : cycle de vie des paiements d'abonnement."""
