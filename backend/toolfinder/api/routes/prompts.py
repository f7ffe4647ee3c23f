"""Prompt Routes — view, edit and dry-run the configurable generative prompts.

Invariants:
    - Only known function names are addressable (404 otherwise)
    - PUT returns 201 when it creates the first stored version, 200 when it bumps one
    - POST /test never persists the candidate
"""

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from toolfinder.api.dependencies import get_completion, get_prompt_provider
from toolfinder.core.domain_types import PromptFunction
from toolfinder.core.errors import ResourceNotFoundError
from toolfinder.core.repository_protocols import TextCompletion
from toolfinder.schemas.prompts import PromptTest, PromptUpdate
from toolfinder.services.prompt_provider import DbPromptProvider

router = APIRouter(prefix="/api/v1/prompts", tags=["prompts"])


def _known_function(function_name: str) -> str:
    try:
        return PromptFunction(function_name).value
    except ValueError:
        raise ResourceNotFoundError("Prompt", function_name)


@router.get("")
async def list_prompts(prompts: DbPromptProvider = Depends(get_prompt_provider)):
    return {"success": True, "prompts": await prompts.list_prompts()}


@router.get("/{function_name}")
async def get_prompt(
    function_name: str, prompts: DbPromptProvider = Depends(get_prompt_provider),
):
    name = _known_function(function_name)
    return {"success": True, "prompt": await prompts.get_prompt_record(name)}


@router.put("/{function_name}")
async def update_prompt(
    function_name: str,
    body: PromptUpdate,
    prompts: DbPromptProvider = Depends(get_prompt_provider),
):
    name = _known_function(function_name)
    record, created = await prompts.update_prompt(
        name, body.system_prompt, body.user_prompt_template,
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content=jsonable_encoder({"success": True, "prompt": record}),
    )


@router.post("/{function_name}/test")
async def test_prompt(
    function_name: str,
    body: PromptTest,
    prompts: DbPromptProvider = Depends(get_prompt_provider),
    completion: TextCompletion = Depends(get_completion),
):
    _known_function(function_name)
    result = await prompts.test_prompt(
        completion, body.system_prompt, body.user_prompt_template, body.test_variables,
    )
    return {"success": True, "result": result}
