import logging

from parking_violations.services.constants.exceptions import ValidationException

LOG = logging.getLogger(__name__)

class BaseJob:

    def perform(self, *args, **kwargs):
        raise NotImplementedError(
            'Subclassed job must implement this method.')

    def run(self, *args, **kwargs):
        try:
            return self.perform(*args, **kwargs)
        except NotImplementedError as ex:
            LOG.error(ex)
        except ValidationException as ex:
            LOG.error(f'{type(self).__name__} was given bad arguments: {ex}')
