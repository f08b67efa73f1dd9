# pollboard/errors.py

# Failure taxonomy shared by the core and the presentation layer.
# A missing target id is not an exception: update/delete return an affected count of 0.


class PollboardError(Exception):
    status_code = 500
    public_message = 'Internal error'

    def __init__(self, message=None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class AuthError(PollboardError):
    """Bad credentials. Never says whether the user or the password was wrong."""
    status_code = 401
    public_message = 'Invalid username or password'


class Forbidden(PollboardError):
    status_code = 403
    public_message = 'Forbidden: You do not have permission to access this page.'


class ValidationError(PollboardError):
    status_code = 400
    public_message = 'Invalid input'


class StorageFailure(PollboardError):
    """The datastore errored or is unreachable. Details stay in the server log."""
    status_code = 500
    public_message = 'Storage failure'
