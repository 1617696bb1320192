# Export capability permission class and decorator for easy importing
from apps.core.permissions import HasModuleCapability, requires_capability

__all__ = ['HasModuleCapability', 'requires_capability']
