import logging
from typing import Iterable, List

from zeroconf.const import _CLASS_IN

from mdns.models import Question, ResourceRecord, Service

logger = logging.getLogger(__name__)

def service_answer(service: Service) -> ResourceRecord:
    return ResourceRecord(
        domain=service.domain,
        type=service.type,
        data=service.data,
        ttl=service.ttl,
        class_=_CLASS_IN
    )

def answer_questions(questions: Iterable[Question], services: List[Service]) -> List[ResourceRecord]:
    """Collect one answer per (question, service) pair with an exactly matching domain"""
    answers = []
    for question in questions:
        for service in services:
            if service.domain == question.domain:
                answers.append(service_answer(service))
        logger.debug(f"Question {question.domain}: {len(answers)} answers so far")
    return answers
