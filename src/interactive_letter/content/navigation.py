"""
Option selection: from a node and a chosen option to the next node id.
"""

from __future__ import annotations

import logging

from ..models import ContentNode, NavigationResult, Option
from .base import InvalidSelection, NotFound
from .resolver import GraphResolver

logger = logging.getLogger("interactive-letter")


def find_option(node: ContentNode, option_id: str) -> Option:
    """Find an option by id on a node.

    The primary options are searched first, then the sub-question's. The
    first match in source order wins, so duplicate ids resolve to the
    earliest entry.

    Raises:
        InvalidSelection: If neither list offers the option
    """
    for option in node.options:
        if option.id == option_id:
            return option
    for option in node.secondary_options or ():
        if option.id == option_id:
            return option
    raise InvalidSelection(node.id, option_id)


class NavigationResolver:
    """Turns option selections into next-node identifiers.

    navigate() never checks that the destination exists: a dangling edge
    still yields its identifier and the caller decides what to show.
    """

    def __init__(self, resolver: GraphResolver) -> None:
        self.resolver = resolver

    def navigate(self, current_node: ContentNode, selected_option_id: str, language: str) -> str:
        """Return the id of the node the selected option leads to.

        Raises:
            InvalidSelection: If the option is not on the node
        """
        option = find_option(current_node, selected_option_id)
        logger.debug(
            f"Navigate ({current_node.id}, {language}) --{option.id}--> {option.next_node_id}"
        )
        return option.next_node_id

    async def navigate_from(
        self,
        node_id: str,
        selected_option_id: str,
        language: str,
    ) -> NavigationResult:
        """
        Resolve the current node, follow the option, and try the destination.

        Args:
            node_id: Identifier of the node the user is on
            selected_option_id: Option chosen by the user
            language: Language code

        Returns:
            NavigationResult; next_node is None if the destination does not resolve

        Raises:
            NotFound: If the current node does not resolve
            InvalidSelection: If the option is not on the current node
        """
        current = await self.resolver.resolve(node_id, language)
        option = find_option(current, selected_option_id)

        try:
            next_node = await self.resolver.resolve(option.next_node_id, language)
        except NotFound:
            logger.warning(
                f"Option '{option.id}' on '{node_id}' points to unresolvable node "
                f"'{option.next_node_id}'"
            )
            next_node = None

        return NavigationResult(
            from_node_id=current.id,
            selected_option=option,
            next_node_id=option.next_node_id,
            next_node=next_node,
        )


__all__ = [
    "NavigationResolver",
    "find_option",
]
