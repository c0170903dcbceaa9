from __future__ import annotations

"""
CSV renderer used by the `export/` actions.

Exports stream their own `StreamingHttpResponse`; this renderer exists so that
`Accept: text/csv` (or `?format=csv`) negotiates instead of failing with 406,
and so error envelopes raised before streaming still render when CSV was asked
for (they are emitted as JSON text).
"""

import json
from typing import Any, Optional

from rest_framework.renderers import BaseRenderer


class CSVRenderer(BaseRenderer):
    media_type = "text/csv"
    format = "csv"
    charset = "utf-8"

    def render(
        self,
        data: Any,
        accepted_media_type: Optional[str] = None,
        renderer_context: Optional[dict] = None,
    ) -> bytes:
        if data is None:
            return b""
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        if isinstance(data, str):
            return data.encode("utf-8")
        return json.dumps(data, ensure_ascii=False, default=str).encode("utf-8")
