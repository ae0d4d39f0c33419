"""Statistiques de présence calculées à partir des invités (fonctions pures)."""
from collections import Counter
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List, Iterable, Optional, Tuple

from models import RsvpStatus, CENT
from contribution_stats import percent, apportion_percentages


def peak_hour(arrival_times: Iterable[datetime]) -> Optional[int]:
    """Heure (0-23) ayant le plus d'arrivées; l'heure la plus tôt gagne à égalité."""
    counts = Counter(t.hour for t in arrival_times if t is not None)
    if not counts:
        return None
    return min(counts, key=lambda hour: (-counts[hour], hour))


def arrivals_by_hour(arrival_times: Iterable[datetime]) -> List[Dict[str, Any]]:
    counts = Counter(t.hour for t in arrival_times if t is not None)
    hours = sorted(counts)
    percentages = apportion_percentages([counts[h] for h in hours])
    return [
        {'hour': hour, 'count': counts[hour], 'percentage': pct}
        for hour, pct in zip(hours, percentages)
    ]


def compute_live_stats(invites: Iterable) -> Dict[str, Any]:
    """Compteurs RSVP et présence pour une liste d'invités.

    `presence_rate` est le taux de présence attendu: invités ayant confirmé
    rapportés au total des invités (valeur mémorisée dans les snapshots).
    `attendance_rate` rapporte les confirmés effectivement présents
    (cérémonie ou réception) aux confirmés. Les deux restent dans [0, 100];
    les présents sans RSVP confirmé sont comptés à part.
    """
    stats = {
        'total_invites': 0,
        'confirmed_rsvp': 0,
        'declined_rsvp': 0,
        'maybe_rsvp': 0,
        'pending_rsvp': 0,
        'no_answer': 0,
        'confirmed_companions': 0,
        'present_ceremony': 0,
        'present_reception': 0,
        'present_any': 0,
        'present_confirmed': 0,
        'present_unconfirmed': 0,
    }
    arrivals = []

    for invite in invites:
        stats['total_invites'] += 1
        confirmed = invite.rsvp_status == RsvpStatus.CONFIRMED
        if invite.rsvp_status is None:
            stats['no_answer'] += 1
        elif confirmed:
            stats['confirmed_rsvp'] += 1
            stats['confirmed_companions'] += invite.companions_confirmed or 0
        elif invite.rsvp_status == RsvpStatus.DECLINED:
            stats['declined_rsvp'] += 1
        elif invite.rsvp_status == RsvpStatus.MAYBE:
            stats['maybe_rsvp'] += 1
        else:
            stats['pending_rsvp'] += 1

        if invite.present_ceremony:
            stats['present_ceremony'] += 1
        if invite.present_reception:
            stats['present_reception'] += 1
        if invite.present_ceremony or invite.present_reception:
            stats['present_any'] += 1
            stats['present_confirmed' if confirmed else 'present_unconfirmed'] += 1
        if invite.arrived_at is not None:
            arrivals.append(invite.arrived_at)

    stats['total_confirmed_people'] = stats['confirmed_rsvp'] + stats['confirmed_companions']
    stats['presence_rate'] = percent(stats['confirmed_rsvp'], stats['total_invites'])
    stats['attendance_rate'] = percent(stats['present_confirmed'], stats['confirmed_rsvp'])
    stats['peak_arrival_hour'] = peak_hour(arrivals)
    return stats


def predict_rate(points: List[Tuple[date, Decimal]], target_day: date) -> Optional[Decimal]:
    """Extrapole un taux par moindres carrés sur (date, taux).

    Un seul point (ou des dates toutes identiques) donne la moyenne. Le
    résultat est borné à [0, 100].
    """
    points = [(day, Decimal(rate)) for day, rate in points if rate is not None]
    if not points:
        return None

    origin = min(day for day, _ in points)
    xs = [Decimal((day - origin).days) for day, _ in points]
    ys = [rate for _, rate in points]
    n = len(points)
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n

    sxx = sum((x - mean_x) ** 2 for x in xs)
    if sxx == 0:
        prediction = mean_y
    else:
        sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
        slope = sxy / sxx
        intercept = mean_y - slope * mean_x
        prediction = intercept + slope * Decimal((target_day - origin).days)

    prediction = max(Decimal('0'), min(Decimal('100'), prediction))
    return prediction.quantize(CENT, rounding=ROUND_HALF_UP)
