"""Recipe mixing: catalog sourcing with generative gap fill."""

from smartcook.services.mix.engine import MixEngine, MixState

__all__ = ["MixEngine", "MixState"]
