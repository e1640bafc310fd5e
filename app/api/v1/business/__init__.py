"""Module Négocio : profil du négocio et portail client."""
