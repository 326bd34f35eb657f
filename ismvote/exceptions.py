"""Exceptions raised by the voting engine."""


class IsmVoteException(Exception):
    pass


class VotesNotFoundError(IsmVoteException, KeyError):
    """No votes were cast for the requested class."""
    def __init__(self, class_id):
        super(VotesNotFoundError, self).__init__('no votes found for class id {}'.format(class_id))
        self.class_id = class_id

    def __str__(self):
        return self.args[0]


class ModelFormatError(IsmVoteException, ValueError):
    """Persisted model data is missing a section or is malformed."""


class ConfigurationMismatchError(ModelFormatError):
    """The configuration asks for data the persisted model does not contain."""
