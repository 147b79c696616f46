"""
Configuration shared by request body schemas.
"""
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

# Request bodies accept camelCase keys as well as the snake_case field names.
REQUEST_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)
