from pydantic import BaseModel

class StoryOut(BaseModel):
    id: int
    title: str
    # display name of the creating user
    creator: str
