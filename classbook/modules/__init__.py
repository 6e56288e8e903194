"""Domain modules package."""

from classbook.modules.lessons import models as lessons_models  # noqa: F401
