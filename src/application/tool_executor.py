from __future__ import annotations

import logging
import time
from typing import Any

from domain.schemas import ToolContext, ToolRequest, ToolResponse
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolExecutor:
    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    def run(self, request: ToolRequest) -> ToolResponse:
        logger.info("ToolExecutor running request_id=%s tool=%s", request.request_id, request.tool)
        t = time.perf_counter()
        try:
            tool = self._registry.get_tool(request.tool)
            response = tool.run(request)
        except Exception as exc:
            logger.exception("ToolExecutor failed request_id=%s tool=%s", request.request_id, request.tool)
            response = ToolResponse(
                request_id=request.request_id,
                tool=request.tool,
                ok=False,
                errors=[str(exc) or exc.__class__.__name__],
                context=request.context,
            )
        logger.info(
            "ToolExecutor finished request_id=%s tool=%s in %.2fs ok=%s",
            request.request_id,
            request.tool,
            time.perf_counter() - t,
            response.ok,
        )
        return response

    def run_named(self, tool: str, args: dict[str, Any], context: ToolContext, request_id: str) -> ToolResponse:
        return self.run(ToolRequest(request_id=request_id, tool=tool, args=args, context=context))
