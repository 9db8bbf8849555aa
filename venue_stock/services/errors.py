"""
Taxonomie d'erreurs du moteur de réapprovisionnement.

- ValidationError        : identifiants manquants / transition illégale -> jamais retry
- TransientStoreError    : réseau / indispo / deadline -> retry avec backoff
- StoreError             : toute autre erreur store -> abort immédiat
- LockHeldError          : un draft est déjà ouvert pour ce fournisseur
                           (converti en "guarded" par le materializer)

Les composants purs (variance, suggestions, sélection fournisseur) ne lèvent
rien pour des raisons de forme de données.
"""


class ReplenishmentError(Exception):
    pass


class ValidationError(ReplenishmentError):
    pass


class InvalidTransitionError(ValidationError):
    pass


class OrderNotFoundError(ValidationError):
    pass


class StoreError(ReplenishmentError):
    pass


class TransientStoreError(StoreError):
    pass


class LockHeldError(ReplenishmentError):
    def __init__(self, venue_id: str, supplier_key: str):
        super().__init__(f"Open draft already exists for supplier key {supplier_key!r} in venue {venue_id!r}")
        self.venue_id = venue_id
        self.supplier_key = supplier_key
