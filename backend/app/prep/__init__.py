from app.prep.generator import InterviewPrepGenerator, parse_prep_response, validate_prep_payload
from app.prep.schemas import PrepQuestion, PrepResult

__all__ = ["InterviewPrepGenerator", "PrepQuestion", "PrepResult", "parse_prep_response", "validate_prep_payload"]
