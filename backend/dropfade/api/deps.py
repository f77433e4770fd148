# dropfade/api/deps.py

from fastapi import Request

from dropfade.services.drop_lifecycle import DropLifecycleManager


def get_drop_manager(request: Request) -> DropLifecycleManager:
    """
    FastAPI dependency returning the app's lifecycle manager.
    Usage:
        def my_route(drops: DropLifecycleManager = Depends(get_drop_manager)):
            ...
    """
    return request.app.state.drops
