"""Template rendering for digest emails using Jinja2.

Templates live in the agent_digest.notifications.email_templates package
directory and are rendered with StrictUndefined so a missing variable fails
the digest instead of producing a half-empty email.
"""

from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from agent_digest.logging import get_logger

from .models import NotificationTemplateError

logger = get_logger(__name__, component="templates")


class TemplateRenderer:
    """Renders the HTML and plain text digest bodies.

    Templates are cached by the Jinja2 environment across renders.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        html_template: str = "agent_digest.html.j2",
        text_template: str = "agent_digest.txt.j2",
    ):
        """
        Args:
            template_dir: Directory name within the notifications package
            html_template: Filename of HTML body template
            text_template: Filename of plain text body template
        """
        self.html_template_name = html_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("agent_digest.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html", "html.j2")),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, context: Dict[str, Any]) -> Dict[str, str]:
        """Render both bodies.

        Args:
            context: Template variables (see payloads.build_digest_context)

        Returns:
            Dictionary with "html_body" and "text_body"

        Raises:
            NotificationTemplateError: If a template is missing or fails to render
        """
        try:
            html_body = self.env.get_template(self.html_template_name).render(context)
            text_body = self.env.get_template(self.text_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True, extra={"event": "digest.render.failed"})
            raise NotificationTemplateError(error_msg) from e

        return {"html_body": html_body, "text_body": text_body}
