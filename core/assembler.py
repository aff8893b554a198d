from collections.abc import Mapping

from core.log import get_logger
from core.types import FieldKind, ResponsePayload

logger = get_logger("assembler")


class ResponseAssembler:
    """Forces every payload of one agent into the same shape."""

    def __init__(self, schema: Mapping[str, FieldKind], fallback_text: str):
        if not fallback_text.strip():
            raise ValueError("fallback_text must not be empty")
        self.schema = dict(schema)
        self.fallback_text = fallback_text

    def assemble(self, payload: ResponsePayload) -> ResponsePayload:
        text = payload.text if payload.text and payload.text.strip() else self.fallback_text

        fields = {}
        for name, kind in self.schema.items():
            value = payload.fields.get(name)
            fields[name] = kind.default() if value is None else value

        extra = set(payload.fields) - set(self.schema)
        if extra:
            logger.debug("Dropping undeclared fields: %s", ", ".join(sorted(extra)))

        return ResponsePayload(
            text=text,
            fields=fields,
            processing_time=payload.processing_time,
        )
