"""Module Clinique : clients, citas, recetas, documents et paiements d'un négocio."""
