"""
Print shop schemas.

Pydantic models for request/response validation.
"""

from printshop.schemas.auth import *
from printshop.schemas.organization import *
from printshop.schemas.pricing import *
from printshop.schemas.resources import *
