from fastapi import APIRouter

from app.dependencies import ReceptionistDep
from app.schemas.call import CallConversationState
from app.schemas.responses import HangupRequest, HangupResponse, TurnRequest, TurnResponse

router = APIRouter(prefix="/receptionist")


@router.post("/turn", response_model=TurnResponse)
async def turn(request: TurnRequest, service: ReceptionistDep) -> TurnResponse:
    # The client echoes the state; a missing one means the call just started.
    state = request.state or CallConversationState()
    return await service.process_utterance(
        request.call_id, request.caller_phone, request.utterance, state=state
    )


@router.post("/hangup", response_model=HangupResponse)
async def hangup(request: HangupRequest, service: ReceptionistDep) -> HangupResponse:
    return await service.finish_call(
        request.call_id, request.caller_phone, state=request.state or CallConversationState()
    )
