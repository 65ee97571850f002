"""
Contact Routing

Phone number variants, project membership probing and the contact
routing state machine.
"""

from whatsapp_router.routing.phone import alternate_wa_id, lookup_candidates
from whatsapp_router.routing.contact_state import (
    ContactRouting,
    RoutingState,
    Transition,
    apply_selection_reply,
    is_reset_command,
    resolve_membership,
)
from whatsapp_router.routing.membership import MembershipResolver

__all__ = [
    "alternate_wa_id",
    "lookup_candidates",
    "ContactRouting",
    "RoutingState",
    "Transition",
    "apply_selection_reply",
    "is_reset_command",
    "resolve_membership",
    "MembershipResolver",
]
