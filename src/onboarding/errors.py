"""
Onboarding error types.

Parse failures and navigation limits are not exceptions (the state machine
reports them as turn results). Only profile persistence raises, and every
persistence error is recoverable: the visitor re-sends to retry.
"""


class PersistenceError(Exception):
    """Profile save was rejected or could not be attempted."""

    user_message = (
        "Désolé, une erreur s'est produite lors de l'enregistrement. "
        "Veuillez réessayer."
    )

    def __init__(self, detail: str = "", status_code: int | None = None):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail
        self.status_code = status_code


class ValidationFailure(PersistenceError):
    """The profile service refused the payload (HTTP 400/422)."""

    user_message = (
        "Certaines de vos réponses n'ont pas pu être validées. "
        "Tapez 'retour' pour les corriger, ou renvoyez votre réponse pour réessayer."
    )


class ServiceUnavailable(PersistenceError):
    """The profile service or its database is down (HTTP 503)."""

    user_message = (
        "Le service est momentanément indisponible. "
        "Veuillez réessayer dans quelques instants."
    )


class ServerFailure(PersistenceError):
    """Any other non-2xx answer from the profile service."""

    user_message = (
        "Désolé, une erreur serveur s'est produite lors de l'enregistrement. "
        "Veuillez réessayer."
    )


class NetworkFailure(PersistenceError):
    """The request never got an HTTP answer (connection, DNS, timeout)."""

    user_message = (
        "Impossible de joindre le serveur. "
        "Vérifiez votre connexion puis réessayez."
    )
