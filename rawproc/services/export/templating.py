import datetime
import os
from typing import Any, Dict

from jinja2 import BaseLoader, Environment, TemplateError

from rawproc.domain.models import ExportConfig
from rawproc.kernel.system.logging import get_logger

logger = get_logger(__name__)


class FilenameTemplater:
    """
    Generates output filenames from Jinja2 templates.
    """

    def __init__(self) -> None:
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, pattern: str, context: Dict[str, Any]) -> str:
        """
        Renders the filename pattern with the provided context.
        Falls back to the original name if the template is broken or renders empty.
        """
        original = context.get("original_name", "output")
        try:
            template = self.env.from_string(pattern)
            render_context = {"date": datetime.date.today().isoformat(), **context}
            rendered = template.render(render_context).strip()
        except TemplateError as e:
            logger.warning(f"Invalid filename pattern '{pattern}': {e}")
            return str(original)

        if not rendered:
            logger.warning(f"Filename pattern '{pattern}' rendered empty")
            return str(original)
        return rendered.replace(os.sep, "_")


def render_export_filename(
    file_path: str,
    export_settings: ExportConfig,
    extra: Dict[str, Any] | None = None,
) -> str:
    """
    Output base name (no extension) for a source file.
    """
    context: Dict[str, Any] = {
        "original_name": os.path.splitext(os.path.basename(file_path))[0],
        "format": export_settings.export_fmt.lower(),
        **(extra or {}),
    }
    return FilenameTemplater().render(export_settings.filename_pattern, context)


def unique_output_path(directory: str, base_name: str, ext: str) -> str:
    """
    Joins directory/base_name.ext, appending _1, _2, ... if the file exists.
    """
    candidate = os.path.join(directory, f"{base_name}.{ext}")
    index = 1
    while os.path.exists(candidate):
        candidate = os.path.join(directory, f"{base_name}_{index}.{ext}")
        index += 1
    return candidate
