"""
Contact Routing State Machine

Decides which project a contact talks about:

    UNASSIGNED         no project, nothing pending
    PENDING_SELECTION  several projects claimed the number, waiting for a reply
    ASSIGNED           bound to exactly one project

Transitions are pure: they take the current routing and an event and
return the next routing plus the reply texts to send. Persisting the
routing and sending replies is up to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

RESET_COMMAND = "0"

GREETING_TEXTS = (
    "Olá! Você está falando com o Bot de WhatsApp de {bot_name}. 👋",
    "Estamos conferindo se o seu número está cadastrado em algum projeto "
    "para direcioná-lo corretamente...",
)
DETECTED_TEXT = "✅ Número encontrado! Você foi detectado no projeto: *{name}*"
SELECTION_PROMPT_HEADER = (
    "Você está cadastrado em múltiplos projetos. "
    "Por favor, escolha sobre qual projeto deseja falar:\n\n"
)
SELECTION_PROMPT_FOOTER = "\nDigite o número do projeto que deseja discutir."
SELECTION_CONFIRMED_TEXT = "Perfeito! Agora vamos falar sobre o projeto: {name}. Como posso ajudá-lo?"
INVALID_OPTION_TEXT = "Opção inválida. Por favor, escolha um dos números listados."
NOT_REGISTERED_TEXT = "Desculpe, você não está cadastrado em nenhum projeto no momento."


class RoutingState(str, Enum):
    """Project routing state of a contact."""

    UNASSIGNED = "unassigned"
    PENDING_SELECTION = "pending_selection"
    ASSIGNED = "assigned"


@dataclass(frozen=True)
class ContactRouting:
    """Routing fields of a contact."""

    project_id: int | None = None
    pending_selection: bool = False
    available_project_ids: tuple[int, ...] = ()

    @property
    def state(self) -> RoutingState:
        if self.pending_selection:
            return RoutingState.PENDING_SELECTION
        if self.project_id is not None:
            return RoutingState.ASSIGNED
        return RoutingState.UNASSIGNED

    @classmethod
    def unassigned(cls) -> "ContactRouting":
        return cls()

    @classmethod
    def assigned(cls, project_id: int) -> "ContactRouting":
        return cls(project_id=project_id)

    @classmethod
    def pending(cls, project_ids: list[int]) -> "ContactRouting":
        return cls(pending_selection=True, available_project_ids=tuple(project_ids))

    @classmethod
    def from_contact(cls, contact: Any) -> "ContactRouting":
        """Read routing from a Contact row."""
        available = tuple(int(i) for i in (contact.available_project_ids or ()))
        return cls(
            project_id=contact.project_id,
            pending_selection=bool(contact.pending_project_selection),
            available_project_ids=available,
        )

    def apply_to(self, contact: Any) -> None:
        """Write routing onto a Contact row."""
        contact.project_id = self.project_id
        contact.pending_project_selection = self.pending_selection
        contact.available_project_ids = list(self.available_project_ids) or None


@dataclass(frozen=True)
class Transition:
    """Next routing and the replies describing it."""

    routing: ContactRouting
    replies: list[str] = field(default_factory=list)

    @property
    def state(self) -> RoutingState:
        return self.routing.state


def is_reset_command(text: str | None) -> bool:
    """A bare "0" asks to re-run project detection from any state."""
    return (text or "").strip() == RESET_COMMAND


def greeting_texts(bot_name: str) -> list[str]:
    return [text.format(bot_name=bot_name) for text in GREETING_TEXTS]


def selection_prompt(project_ids: list[int], project_names: Mapping[int, str]) -> str:
    """Numbered list of candidate projects, one ``<id> - <name>`` per line."""
    lines = "".join(
        f"{project_id} - {project_names.get(project_id, project_id)}\n"
        for project_id in project_ids
    )
    return f"{SELECTION_PROMPT_HEADER}{lines}{SELECTION_PROMPT_FOOTER}"


def resolve_membership(
    candidate_ids: list[int],
    project_names: Mapping[int, str],
) -> Transition:
    """
    Apply a membership result.

    - no candidates: UNASSIGNED, nothing to say
    - one candidate: ASSIGNED, announce the detected project
    - several: PENDING_SELECTION, ask the contact to choose
    """
    # dict.fromkeys keeps order while dropping duplicates
    candidates = list(dict.fromkeys(candidate_ids))

    if not candidates:
        return Transition(ContactRouting.unassigned())

    if len(candidates) == 1:
        project_id = candidates[0]
        replies = []
        if project_id in project_names:
            replies.append(DETECTED_TEXT.format(name=project_names[project_id]))
        return Transition(ContactRouting.assigned(project_id), replies)

    return Transition(
        ContactRouting.pending(candidates),
        [selection_prompt(candidates, project_names)],
    )


def parse_selection(text: str | None) -> int | None:
    try:
        return int((text or "").strip())
    except ValueError:
        return None


def apply_selection_reply(
    routing: ContactRouting,
    text: str | None,
    project_names: Mapping[int, str],
) -> Transition:
    """
    Apply a reply sent while PENDING_SELECTION.

    A listed project id binds the contact; anything else keeps it pending
    and asks again.
    """
    selected = parse_selection(text)

    if selected is not None and selected in routing.available_project_ids:
        name = project_names.get(selected, str(selected))
        return Transition(
            ContactRouting.assigned(selected),
            [SELECTION_CONFIRMED_TEXT.format(name=name)],
        )

    return Transition(routing, [INVALID_OPTION_TEXT])
