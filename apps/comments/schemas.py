from typing import Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, constr


class CommentCreate(BaseModel):
    """
    JSON part (`commentData`) of the multipart comment request.
    parentId makes the comment a reply.
    """
    text: constr(strip_whitespace=True, min_length=1)
    parent_id: Optional[int] = PydanticField(default=None, alias="parentId")

    model_config = ConfigDict(populate_by_name=True)


class CommentUpdate(BaseModel):
    text: constr(strip_whitespace=True, min_length=1)
