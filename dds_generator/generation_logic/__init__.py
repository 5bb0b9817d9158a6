"""Generation logic package.

This package groups the helpers that orchestrate the user-facing workflow (form
submission, PDF export). Keeping them here allows `dds_generator/api/routes.py`
to stay minimal and focused on HTTP routing while core business logic lives in
composable modules.
"""

from .form_controller import FormController  # noqa: F401
from .form_controller import FormState  # noqa: F401
from .report_export import ReportExporter  # noqa: F401
