"""
Eccezioni Custom per l'applicazione.
Progetto: Dental Lab Manager (Gestionale Laboratorio Odontotecnico)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

Tassonomia:
- BusinessValidationError: input non valido (cliente mancante, nessun
  dipendente assegnato, valori numerici errati). Rilevato prima di
  qualunque scrittura.
- ConsistencyViolationError: operazione che violerebbe la coerenza del
  registro contabile (es. eliminazione diretta di un addebito).
- StoreFailureError: il database non è raggiungibile o rifiuta la
  scrittura. Recuperabile: l'operatore può ripetere l'operazione.

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ConflictError",
    "ConsistencyViolationError",
    "StoreFailureError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando un'entità cercata non esiste nel database
    (o appartiene a un altro tenant).
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Risorsa non trovata",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Selezionare un cliente"
        - "Assegnare almeno un dipendente all'ordine"
        - "Dipendente già assegnato all'ordine"
        - "Transizione di stato non consentita"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validazione dati fallita",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflitto di stato",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConsistencyViolationError(ConflictError):
    """
    Eccezione sollevata quando un'operazione violerebbe la coerenza
    tra ordini e registro contabile.

    Lo stato esistente è considerato autorevole: l'operazione viene
    rifiutata senza sovrascrivere nulla.

    Esempi di utilizzo:
        - "Gli addebiti non possono essere eliminati direttamente"
        - "Esiste già un addebito per l'ordine"
    """

    error_code: str = "LEDGER_CONSISTENCY_VIOLATION"

    def __init__(
        self,
        detail: str = "Operazione incoerente con il registro contabile",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class StoreFailureError(AppException):
    """
    Eccezione sollevata quando il database non è disponibile
    o rifiuta la scrittura.

    L'unità di lavoro viene annullata per intero (rollback), quindi
    l'operatore può ripetere la stessa azione.
    """

    status_code: int = 503
    error_code: str = "STORE_FAILURE"

    def __init__(
        self,
        detail: str = "Archivio dati non disponibile, riprovare",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)
