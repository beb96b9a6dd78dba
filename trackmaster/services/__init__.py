"""Order normalization, tracking resolution, ledgers and workflows."""
