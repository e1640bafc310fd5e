"""Module d'authentification."""
