"""Slack Command Routes — /problem and /addtool slash-command endpoints.

Invariants:
    - Raw body bytes go to the front door undecoded (signature covers exact bytes)
    - Reply within the platform deadline: only verification and an enqueue happen here
"""

from fastapi import APIRouter, Depends, Request

from toolfinder.api.dependencies import get_front_door
from toolfinder.services.command_front_door import CommandFrontDoor

router = APIRouter(prefix="/api/v1/slack", tags=["slack"])

TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_HEADER = "X-Slack-Signature"


async def _handle(request: Request, front_door: CommandFrontDoor, command: str) -> dict:
    return await front_door.handle(
        command,
        await request.body(),
        request.headers.get(TIMESTAMP_HEADER),
        request.headers.get(SIGNATURE_HEADER),
    )


@router.post("/problem")
async def problem_command(
    request: Request, front_door: CommandFrontDoor = Depends(get_front_door),
):
    return await _handle(request, front_door, "/problem")


@router.post("/addtool")
async def addtool_command(
    request: Request, front_door: CommandFrontDoor = Depends(get_front_door),
):
    return await _handle(request, front_door, "/addtool")
