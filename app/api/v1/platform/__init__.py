"""Module Plateforme : administration SUPERADMIN."""
