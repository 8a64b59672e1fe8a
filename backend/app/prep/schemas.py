from pydantic import BaseModel, Field


class PrepQuestion(BaseModel):
    question: str = Field(min_length=10)
    modelAnswer: str = Field(min_length=20)


class PrepResult(BaseModel):
    questions: list[PrepQuestion] = Field(min_length=5, max_length=10)
