"""skillaudit: AI-assisted vulnerability audits for Aiken smart-contract projects."""

__version__ = "0.1.0"
