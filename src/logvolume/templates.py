"""Template management.

Provides the Jinja template environment used to generate Fluentd source
configuration for custom log formats.
"""

from collections.abc import Mapping
from enum import StrEnum

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .exceptions import TemplateRenderError

__all__ = ["ConfigRenderer", "TemplateKind", "environment"]

environment = Environment(
    loader=PackageLoader("logvolume", package_path="templates"),
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)
"""The template environment.

Undefined fields are errors rather than empty strings, so a source with a
missing path or format is never written.
"""


class TemplateKind(StrEnum):
    """Scope of a generated Fluentd source."""

    CLUSTER = "cluster"
    PROJECT = "project"

    @property
    def template_name(self) -> str:
        return f"{self.value}.conf.jinja"


class ConfigRenderer:
    """Render Fluentd sources from the packaged templates."""

    def __init__(self, env: Environment = environment) -> None:
        self._env = env

    def render(self, kind: TemplateKind, fields: Mapping[str, str]) -> str:
        """Render one source.

        Parameters
        ----------
        kind
            Which template to use.
        fields
            Values for the template placeholders: ``path``, ``format``,
            ``position_file``, and for project sources ``project``.

        Returns
        -------
        str
            Rendered configuration.

        Raises
        ------
        TemplateRenderError
            Raised if the template is malformed or a field is missing.
        """
        try:
            template = self._env.get_template(kind.template_name)
            return template.render(**fields)
        except TemplateError as e:
            msg = f"Cannot render {kind.value} source: {e}"
            raise TemplateRenderError(msg) from e
