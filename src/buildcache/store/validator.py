"""Layer consistency check for resolved image chains."""

from typing import Sequence

from ..exceptions import LayerMismatchError
from .models import Image


def extends_layers(parent: Image, child: Image) -> bool:
    """Check that the child's layers start with all of the parent's layers."""
    if len(child.layers) < len(parent.layers):
        return False
    return child.layers[: len(parent.layers)] == parent.layers


def validate_chain(chain: Sequence[Image]) -> None:
    """Validate a root-first chain.

    Args:
        chain: Images ordered root first, as returned by resolve_chain

    Raises:
        LayerMismatchError: For the first child that does not extend its parent
    """
    for parent, child in zip(chain, chain[1:]):
        if not extends_layers(parent, child):
            raise LayerMismatchError(parent.id, child.id)
