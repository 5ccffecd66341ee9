"""Instance access controllers."""

from cielreset.instance.base import InstanceController
from cielreset.instance.ciel import CielController, is_ciel_workspace

__all__ = ["CielController", "InstanceController", "is_ciel_workspace"]
