"""macsetup: idempotent macOS developer machine provisioning.

Core design goals:
- One declarative table of steps instead of per-machine script copies
- Check before apply, so re-running is always safe
- Stop at the first failure of a required step; report every outcome
- Centralized logging
"""

__all__ = []
