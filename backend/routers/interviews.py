from fastapi import APIRouter, Depends

from backend import interview_service
from backend.database import get_db
from backend.schemas import AnswerSubmit, AssessRequest, FollowUpRequest, InterviewCreate, SuggestionRequest
from backend.security import get_current_user

router = APIRouter(prefix="/api/interview", tags=["interview"])


@router.post("/create", status_code=201)
def create_interview(body: InterviewCreate, current=Depends(get_current_user), db=Depends(get_db)):
    session = interview_service.create_session(db, current, body)
    return {"message": "Interview session created successfully", "session": session}


# public, no auth
@router.get("/share/{session_id}")
def share_interview(session_id: str, db=Depends(get_db)):
    return interview_service.shared_summary(db, session_id)


@router.get("/{session_id}")
def get_interview(session_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    session = interview_service.get_owned_session(db, session_id, current["_id"])
    return {"session": interview_service.session_view(session)}


@router.post("/{session_id}/start")
def start_interview(session_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    session = interview_service.start_session(db, session_id, current["_id"])
    return {"message": "Interview started successfully", "session": session}


@router.post("/{session_id}/submit")
def submit_answer(session_id: str, body: AnswerSubmit, current=Depends(get_current_user), db=Depends(get_db)):
    return interview_service.submit_answer(db, session_id, current["_id"], body)


@router.post("/{session_id}/assess")
def assess_answer(session_id: str, body: AssessRequest, current=Depends(get_current_user), db=Depends(get_db)):
    return interview_service.assess_answer(db, session_id, current, body)


@router.post("/{session_id}/complete")
def complete_interview(session_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    results = interview_service.complete_session(db, session_id, current)
    return {"message": "Interview completed successfully", "results": results}


@router.delete("/{session_id}")
def cancel_interview(session_id: str, current=Depends(get_current_user), db=Depends(get_db)):
    return interview_service.cancel_session(db, session_id, current["_id"])


@router.post("/{session_id}/follow-up")
def follow_up(session_id: str, body: FollowUpRequest, current=Depends(get_current_user), db=Depends(get_db)):
    return interview_service.follow_up(db, session_id, current["_id"], body.questionId)


@router.post("/{session_id}/ai-suggestions")
def ai_suggestions(session_id: str, body: SuggestionRequest, current=Depends(get_current_user),
                   db=Depends(get_db)):
    return interview_service.interviewer_suggestion(db, session_id, current, body)
