"""Service layer tying detection and moving together."""
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from vault_resort.config import ResortConfig
from vault_resort.exceptions import ErrorCode, ValidationError
from vault_resort.models.schema import MoveReport, MoveSelection, ResortPair
from vault_resort.observability import timed_operation
from vault_resort.services.attachment_folders import AttachmentFolderPolicy
from vault_resort.services.attachment_mover import AttachmentMover
from vault_resort.services.pair_detector import ResortPairDetector
from vault_resort.services.reference_graph import ReferenceGraph
from vault_resort.storage.link_cache import LinkCache
from vault_resort.storage.vault import FileSystemVault

logger = logging.getLogger(__name__)


class ResortService:
    """Detects misplaced attachments in a vault and moves them.

    Args:
        vault: Vault to operate on.
        link_cache: Link cache over the same vault.
        policy: Canonical attachment folder policy.
        notify: Receives one message per failed move.
    """

    def __init__(
        self,
        vault: FileSystemVault,
        link_cache: LinkCache,
        policy: AttachmentFolderPolicy,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.vault = vault
        self.link_cache = link_cache
        self.policy = policy
        self.graph = ReferenceGraph(link_cache, policy.folder_for)
        self.detector = ResortPairDetector(vault, link_cache.is_note)
        self.mover = AttachmentMover(vault, notify=notify)

    @classmethod
    def from_config(
        cls,
        cfg: Optional[ResortConfig] = None,
        notify: Optional[Callable[[str], None]] = None,
    ) -> "ResortService":
        """Build a service for the configured vault (the global config by default)."""
        if cfg is None:
            from vault_resort.config import config as cfg
        vault = FileSystemVault(cfg.get_vault_path(), cfg.get_ignored_folders())
        link_cache = LinkCache(vault, note_extensions=cfg.get_note_extensions())
        return cls(vault, link_cache, AttachmentFolderPolicy.from_config(cfg), notify=notify)

    def detect_resort_pairs(self) -> List[ResortPair]:
        """Rebuild the reference graph from disk and detect misplaced attachments."""
        with timed_operation("detect_resort_pairs", vault=self.vault.root) as op:
            self.graph.rebuild()
            pairs = self.detector.detect(self.graph)
            op["result_count"] = len(pairs)
        return pairs

    def execute_moves(self, selections: Iterable[MoveSelection]) -> MoveReport:
        """Move the confirmed selections in order."""
        selections = list(selections)
        with timed_operation("execute_moves", count=len(selections)) as op:
            report = self.mover.execute(selections)
            op["moved"] = report.success_count
        return report


def parse_choices(choices: str, pairs: Sequence[ResortPair]) -> List[Tuple[int, int]]:
    """Parse ``"pair:candidate,..."`` (or ``"all"``) into index tuples.

    ``all`` selects the first candidate of every pair; a bare ``pair``
    index selects its first candidate.

    Raises:
        ValidationError: If a choice is not of the form ``int[:int]``.
    """
    text = (choices or "").strip()
    if not text:
        raise ValidationError(
            "No choices given", field="choices", value=choices,
            code=ErrorCode.INVALID_SELECTION,
        )
    if text.lower() == "all":
        return [(i, 0) for i in range(len(pairs))]

    parsed: List[Tuple[int, int]] = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        pair_part, _, candidate_part = item.partition(":")
        try:
            pair_index = int(pair_part)
            candidate_index = int(candidate_part) if candidate_part else 0
        except ValueError as e:
            raise ValidationError(
                f"Invalid choice '{item}', expected 'pair:candidate'",
                field="choices",
                value=item,
                code=ErrorCode.INVALID_SELECTION,
            ) from e
        parsed.append((pair_index, candidate_index))
    return parsed


def selections_from_choices(
    pairs: Sequence[ResortPair], choices: Iterable[Tuple[int, int]]
) -> List[MoveSelection]:
    """Turn (pair index, candidate index) choices into move selections.

    Raises:
        ValidationError: If an index is out of range or a pair is chosen twice.
    """
    selections: List[MoveSelection] = []
    seen = set()
    for pair_index, candidate_index in choices:
        if not 0 <= pair_index < len(pairs):
            raise ValidationError(
                f"Pair index {pair_index} out of range for {len(pairs)} pairs",
                field="pair",
                value=str(pair_index),
                code=ErrorCode.INVALID_SELECTION,
            )
        if pair_index in seen:
            raise ValidationError(
                f"Pair {pair_index} selected more than once",
                field="pair",
                value=str(pair_index),
                code=ErrorCode.INVALID_SELECTION,
            )
        pair = pairs[pair_index]
        try:
            selection = MoveSelection.from_pair(pair, candidate_index)
        except IndexError as e:
            raise ValidationError(
                f"Candidate index {candidate_index} out of range for pair {pair_index}",
                field="candidate",
                value=str(candidate_index),
                code=ErrorCode.INVALID_SELECTION,
            ) from e
        seen.add(pair_index)
        selections.append(selection)
    return selections
