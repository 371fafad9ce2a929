from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, Response

from ..deps import SESSION_COOKIE, get_auth_service, get_current_user, get_story_service
from ..models.users import User
from ..rendering import render
from ..services import AuthService, StoryService

router = APIRouter()


@router.get('/')
async def root(
    current_user: Optional[User] = Depends(get_current_user),
    stories: StoryService = Depends(get_story_service),
):
    user_list = await stories.list_users()
    return render('index.html', current_user=current_user, user_list=user_list)


@router.get('/login')
async def login_form():
    return render('login.html')


@router.post('/login')
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
):
    user = await auth.verify(username, password)
    token, _ = await auth.start_session(
        user,
        user_agent=request.headers.get('user-agent'),
        ip=request.client.host if request.client else None,
    )
    response = Response(headers={'HX-Redirect': '/'})
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(auth.session_ttl.total_seconds()),
        httponly=True,
        samesite='lax',
        secure=request.app.state.cookie_secure,
    )
    return response


@router.post('/logout')
async def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        await auth.end_session(token)
    response = Response(headers={'HX-Redirect': '/login'})
    response.delete_cookie(SESSION_COOKIE)
    return response
