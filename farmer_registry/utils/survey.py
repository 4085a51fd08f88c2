# Survey Number Generation
import logging
import random
import re
import string

from farmer_registry.errors import SurveyNumberError

logger = logging.getLogger(__name__)

SURVEY_NUMBER_PATTERN = re.compile(r'^[A-Z]{4}[0-9]{7}$')

_rng = random.SystemRandom()

def random_survey_number():
    """Four uppercase letters followed by seven digits, e.g. ``QWER0012345``."""
    letters = ''.join(_rng.choice(string.ascii_uppercase) for _ in range(4))
    digits = f'{_rng.randrange(10_000_000):07d}'
    return f'{letters}{digits}'

def is_valid_survey_number(value):
    return bool(value) and SURVEY_NUMBER_PATTERN.match(value) is not None

def generate_survey_number(is_taken, max_attempts=10, candidate=None):
    """
    Draw random survey numbers until ``is_taken(number)`` is False.

    The check only narrows the race; the unique constraint on
    ``farmers.survey_number`` remains the authority, so callers must still
    handle a collision at commit time.

    Raises:
        SurveyNumberError: no free number after ``max_attempts`` draws
    """
    for attempt in range(1, max_attempts + 1):
        number = (candidate or random_survey_number)()
        if not is_taken(number):
            return number
        logger.info('Survey number %s already taken (attempt %d/%d)', number, attempt, max_attempts)

    raise SurveyNumberError(detail=f'Gave up after {max_attempts} attempts')
