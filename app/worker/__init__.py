"""Worker arq : exécution planifiée du job de révision des paiements."""
