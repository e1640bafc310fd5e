"""Jobs de maintenance (révision des paiements)."""
