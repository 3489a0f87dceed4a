"""auditsample - reproducible statistical sampling for compliance audits."""

__version__ = "1.0.0"
