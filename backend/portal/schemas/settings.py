from pydantic import BaseModel


class ApplicationsOpenResponse(BaseModel):
    is_open: bool


class ApplicationsOpenUpdate(BaseModel):
    is_open: bool
