from .dates import utcnow, add_months
from .text import slugify, unique_slug

__all__ = ['utcnow', 'add_months', 'slugify', 'unique_slug']
