"""
WhatsApp Template Registry

Manages approved message templates for WhatsApp Business.
Templates must be pre-approved in the Meta Business Manager.

Each template also carries the human-readable header and body we store
with the outbound message, since the provider only returns an id.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TemplateParameter:
    """A named text parameter in a template component."""

    name: str
    required: bool = True


@dataclass
class TemplateComponent:
    """A component of a template (header, body)."""

    type: str  # header, body
    parameters: list[TemplateParameter] = field(default_factory=list)


@dataclass
class RenderedTemplate:
    """Readable copy of a sent template."""

    header: str
    body: str


@dataclass
class MessageTemplate:
    """
    A WhatsApp message template.

    Templates must be approved in Meta Business Manager before use.
    """

    name: str
    language: str = "pt_BR"
    category: str = "UTILITY"  # UTILITY, MARKETING, AUTHENTICATION
    components: list[TemplateComponent] = field(default_factory=list)
    header_text: str = ""
    body_text: str = ""
    description: str = ""
    # When true, a contact already bound to a project keeps it
    keep_existing_project: bool = False

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for c in self.components for p in c.parameters]

    def build_components(self, variables: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Build template components payload from variables.

        Args:
            variables: Dict mapping parameter names to values

        Returns:
            Components list for API request
        """
        result = []

        for component in self.components:
            comp_data: dict[str, Any] = {"type": component.type}
            parameters = []

            for param in component.parameters:
                value = variables.get(param.name)
                if value is None and param.required:
                    raise ValueError(f"Missing required parameter: {param.name}")

                if value is not None:
                    parameters.append({
                        "type": "text",
                        "parameter_name": param.name,
                        "text": str(value),
                    })

            if parameters:
                comp_data["parameters"] = parameters

            result.append(comp_data)

        return result

    def render(self, variables: dict[str, Any]) -> RenderedTemplate:
        """Readable header and body with variables filled in."""
        values = {name: variables.get(name, "") for name in self.parameter_names}
        return RenderedTemplate(
            header=self.header_text.format(**values),
            body=self.body_text.format(**values),
        )


class TemplateRegistry:
    """
    Registry of approved message templates.

    Templates are registered by name and can be looked up for sending.
    """

    def __init__(self) -> None:
        self._templates: dict[str, MessageTemplate] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register the platform access templates."""

        # New platform account
        self.register(MessageTemplate(
            name="access_created",
            language="en",
            category="UTILITY",
            description="Send platform credentials to a newly invited user",
            components=[
                TemplateComponent(
                    type="header",
                    parameters=[TemplateParameter(name="name")],
                ),
                TemplateComponent(
                    type="body",
                    parameters=[
                        TemplateParameter(name="platform"),
                        TemplateParameter(name="platform_url"),
                        TemplateParameter(name="login"),
                        TemplateParameter(name="password"),
                    ],
                ),
            ],
            header_text="Bem vindo {name}",
            body_text=(
                "Olá, seu acesso à plataforma {platform} foi criado.\n"
                "Você pode estar acessando através desse link:\n"
                "{platform_url}\n"
                "Com o seguinte acesso:\n"
                "{login}\n"
                "Senha: {password}\n"
                "\n"
                "Por favor mude a sua senha após o primeiro acesso."
            ),
        ))

        # Password reset link
        self.register(MessageTemplate(
            name="password_reset_url",
            language="pt_BR",
            category="UTILITY",
            description="Send a password reset link",
            components=[
                TemplateComponent(
                    type="header",
                    parameters=[TemplateParameter(name="platform_name")],
                ),
                TemplateComponent(
                    type="body",
                    parameters=[
                        TemplateParameter(name="name"),
                        TemplateParameter(name="password_reset_url"),
                    ],
                ),
            ],
            header_text="Redefinição de senha {platform_name}",
            body_text=(
                "Olá {name}\n"
                "Segue o link para redefinição de senha da sua conta:\n"
                "{password_reset_url}\n"
                "Se você não solicitou redefinição de senha, desconsidere essa mensagem."
            ),
            keep_existing_project=True,
        ))

    def register(self, template: MessageTemplate) -> None:
        """Register a template."""
        self._templates[template.name] = template

    def get(self, name: str) -> MessageTemplate | None:
        """Get a template by name."""
        return self._templates.get(name)

    def get_or_raise(self, name: str) -> MessageTemplate:
        """Get a template by name, raising if not found."""
        template = self.get(name)
        if template is None:
            raise ValueError(f"Template not found: {name}")
        return template

    def list_templates(self) -> list[MessageTemplate]:
        return list(self._templates.values())


# Global registry instance
_registry: TemplateRegistry | None = None


def get_template_registry() -> TemplateRegistry:
    """Get the global template registry."""
    global _registry
    if _registry is None:
        _registry = TemplateRegistry()
    return _registry
