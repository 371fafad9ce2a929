from fastapi import APIRouter, Depends, Form, Response

from ..deps import get_story_service
from ..rendering import render
from ..services import StoryService

router = APIRouter()


@router.get('')
async def story_list(stories: StoryService = Depends(get_story_service)):
    return render('story-list.html', story_list=await stories.list_stories())


@router.get('/create')
async def story_create_form(stories: StoryService = Depends(get_story_service)):
    return render('story-create.html', user_list=await stories.list_users())


@router.post('')
async def create_story(
    creator: int = Form(...),
    title: str = Form(...),
    stories: StoryService = Depends(get_story_service),
):
    story = await stories.create_story(creator, title)
    return render('story-list-element.html', story=story)


@router.delete('/{story_id}')
async def delete_story(story_id: int, stories: StoryService = Depends(get_story_service)):
    await stories.delete_story(story_id)
    return Response()
