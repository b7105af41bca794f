"""FastAPI dependencies for comments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CommentService
from .submission import CommentSubmissionWorkflow


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state."""
    service = getattr(request.app.state, "comment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment service not available",
        )
    return service


async def get_submission_workflow(request: Request) -> CommentSubmissionWorkflow:
    """Get the comment submission workflow from app state."""
    workflow = getattr(request.app.state, "submission_workflow", None)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment submission not available",
        )
    return workflow


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
SubmissionWorkflowDep = Annotated[
    CommentSubmissionWorkflow, Depends(get_submission_workflow)
]
