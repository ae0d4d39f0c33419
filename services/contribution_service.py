"""Contribution Service - Logique métier des contributions.

Responsabilité (SRP) : cycle de vie des contributions uniquement.
- Validation (cible exclusive, montant borné, cohérence du tenant)
- Transitions de statut (pending -> confirmed -> delivered, cancelled)
- Recalcul du montant des cagnottes à partir des contributions
- PAS d'accès direct DB (utilise les repositories)
"""
import logging
from typing import Optional, Dict, Any, List
from models import Contribution, ContributionStatus, Pot, NotificationType, NotFoundError, parse_money
from contribution_stats import compute_contribution_stats
from repositories.contribution_repository import ContributionRepository
from repositories.invite_repository import InviteRepository
from repositories.gift_repository import GiftRepository
from repositories.pot_repository import PotRepository
from services.activity_log_service import (
    ActivityLogService, ACTION_CONTRIBUTION_CREATE, ACTION_CONTRIBUTION_STATUS
)
from services.notification_service import NotificationService


class ContributionService:
    """Service pour la gestion métier des contributions.

    Pattern: Service Layer
    SOLID:
        - SRP (logique métier contributions uniquement)
        - DIP (dépend des repositories injectés)
    """

    def __init__(self, contribution_repository: ContributionRepository = None,
                 invite_repository: InviteRepository = None,
                 gift_repository: GiftRepository = None,
                 pot_repository: PotRepository = None,
                 activity_log_service: ActivityLogService = None,
                 notification_service: NotificationService = None):
        """Initialise le service avec dependency injection."""
        self.contribution_repo = contribution_repository or ContributionRepository()
        self.invite_repo = invite_repository or InviteRepository()
        self.gift_repo = gift_repository or GiftRepository()
        self.pot_repo = pot_repository or PotRepository()
        self.activity_log = activity_log_service or ActivityLogService()
        self.notifications = notification_service or NotificationService()
        self.logger = logging.getLogger(__name__)

    def create_contribution(self, invite_id: int, gift_id: int = None, pot_id: int = None,
                            amount=None, message: str = None) -> Dict[str, Any]:
        """Crée une contribution en attente de confirmation.

        Args:
            invite_id: Invité contributeur
            gift_id: Cadeau visé (exclusif avec pot_id)
            pot_id: Cagnotte visée (exclusif avec gift_id)
            amount: Montant (obligatoire pour une cagnotte)
            message: Message libre pour le couple

        Returns:
            Dictionnaire de la contribution créée

        Raises:
            ValidationError: cible absente ou double, montant invalide
            ValueError: invité, cadeau ou cagnotte introuvable ou inactif
            PermissionError: cible appartenant à un autre couple
        """
        invite = self.invite_repo.find_by_id(invite_id)
        if not invite:
            raise NotFoundError(f"Invite {invite_id} not found")

        amount = parse_money(amount, 'amount')

        contribution = Contribution(
            invite_id=invite.id,
            gift_id=gift_id,
            pot_id=pot_id,
            amount=amount,
            message=message
        )
        contribution.validate()

        target = self.gift_repo.find_by_id(gift_id) if gift_id is not None else self.pot_repo.find_by_id(pot_id)
        if not target:
            kind = 'Gift' if gift_id is not None else 'Pot'
            raise NotFoundError(f"{kind} {gift_id if gift_id is not None else pot_id} not found")
        if target.couple_id != invite.couple_id:
            raise PermissionError("Contribution target belongs to another couple")
        if not target.is_active:
            raise ValueError(f"'{target.name}' is no longer accepting contributions")

        self.contribution_repo.save(contribution)
        self.logger.info(f"Contribution {contribution.id} created by invite {invite.id} on {contribution}")

        self.activity_log.log(
            invite.couple_id, ACTION_CONTRIBUTION_CREATE,
            actor_id=invite.id, actor_kind='invite',
            details={'contribution_id': contribution.id, 'type': contribution.contribution_type,
                     'target_id': target.id, 'amount': str(contribution.amount) if contribution.amount is not None else None}
        )
        self.notifications.create_notification(
            invite.couple_id, NotificationType.CONTRIBUTION_RECEIVED,
            title=f"New contribution from {invite.full_name}",
            content=str(contribution)
        )
        return contribution.to_dict()

    def get_contribution(self, contribution_id: int, couple_id: int = None) -> Contribution:
        """Récupère une contribution, en vérifiant le couple si fourni.

        Raises:
            ValueError: contribution introuvable
            PermissionError: contribution d'un autre couple
        """
        contribution = self.contribution_repo.find_by_id(contribution_id)
        if not contribution:
            raise NotFoundError(f"Contribution {contribution_id} not found")
        if couple_id is not None and contribution.invite.couple_id != couple_id:
            raise PermissionError("Access denied to this contribution")
        return contribution

    def confirm(self, contribution_id: int, couple_id: int = None,
                actor_id: int = None, actor_kind: str = None) -> Dict[str, Any]:
        """Confirme une contribution en attente.

        Confirmer une contribution déjà confirmée ne change rien (la date de
        confirmation d'origine est conservée).

        Raises:
            ValueError: contribution annulée ou livrée
        """
        contribution = self.get_contribution(contribution_id, couple_id)
        if contribution.status == ContributionStatus.CONFIRMED:
            return contribution.to_dict()
        if not contribution.can_be_confirmed():
            raise ValueError(f"Cannot confirm a {contribution.status} contribution")

        return self._change_status(contribution, ContributionStatus.CONFIRMED, actor_id, actor_kind)

    def deliver(self, contribution_id: int, couple_id: int = None,
                actor_id: int = None, actor_kind: str = None) -> Dict[str, Any]:
        """Marque un cadeau confirmé comme livré et incrémente la quantité reçue."""
        contribution = self.get_contribution(contribution_id, couple_id)
        if contribution.status == ContributionStatus.DELIVERED:
            return contribution.to_dict()
        if not contribution.can_be_delivered():
            raise ValueError("Only confirmed gift contributions can be delivered")

        gift = contribution.gift
        gift.received_quantity = (gift.received_quantity or 0) + 1
        return self._change_status(contribution, ContributionStatus.DELIVERED, actor_id, actor_kind)

    def cancel(self, contribution_id: int, couple_id: int = None,
               actor_id: int = None, actor_kind: str = None) -> Dict[str, Any]:
        """Annule une contribution en attente ou confirmée."""
        contribution = self.get_contribution(contribution_id, couple_id)
        if contribution.status == ContributionStatus.CANCELLED:
            return contribution.to_dict()
        if contribution.status == ContributionStatus.DELIVERED:
            raise ValueError("A delivered contribution cannot be cancelled")

        return self._change_status(contribution, ContributionStatus.CANCELLED, actor_id, actor_kind)

    def _change_status(self, contribution: Contribution, status: ContributionStatus,
                       actor_id: Optional[int], actor_kind: Optional[str]) -> Dict[str, Any]:
        previous = contribution.status
        contribution.set_status(status)
        if contribution.pot is not None:
            self.refresh_pot_amount(contribution.pot, commit=False)
        self.contribution_repo.save(contribution)

        self.logger.info(f"Contribution {contribution.id}: {previous} -> {contribution.status}")
        self.activity_log.log(
            contribution.invite.couple_id, ACTION_CONTRIBUTION_STATUS,
            actor_id=actor_id, actor_kind=actor_kind,
            details={'contribution_id': contribution.id, 'from': previous, 'to': contribution.status}
        )
        return contribution.to_dict()

    def refresh_pot_amount(self, pot: Pot, commit: bool = True) -> Pot:
        """Recalcule le montant collecté d'une cagnotte depuis ses contributions."""
        stats = compute_contribution_stats(self.contribution_repo.find_by_pot(pot.id))
        pot.current_amount = stats['total_amount']
        if commit:
            self.pot_repo.save(pot)
        return pot

    def list_for_gift(self, gift_id: int) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.contribution_repo.find_by_gift(gift_id)]

    def list_for_pot(self, pot_id: int) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.contribution_repo.find_by_pot(pot_id)]

    def list_for_invite(self, invite_id: int) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.contribution_repo.find_by_invite(invite_id)]

    def list_for_couple(self, couple_id: int, status: str = None) -> List[Dict[str, Any]]:
        if status:
            status = ContributionStatus(status).value
        return [c.to_dict() for c in self.contribution_repo.find_by_couple(couple_id, status=status)]
