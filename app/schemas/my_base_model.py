import logging
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CustomBaseModel(BaseModel):
    """Custom base model for all schemas.
    - pre-process the data before init: plain int / float / str / bool fields
      are coerced (e.g. a numeric id read back as str)
    - set the default value if the value cannot be coerced
    """

    def __init__(self, **data: Any) -> None:
        fields = self.__class__.model_fields
        for attr, value in data.items():
            field = fields.get(attr)
            if field is None or value is None:
                continue
            attr_type = field.annotation
            if attr_type not in (int, float, str, bool):
                continue
            try:
                data[attr] = attr_type(value)
            except (TypeError, ValueError):
                logger.warning("Invalid value for key: %s, using default", attr)
                data[attr] = field.get_default(call_default_factory=True)
        super().__init__(**data)

