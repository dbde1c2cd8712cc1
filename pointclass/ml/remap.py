"""
Output Remapper - przeniesienie etykiet z chmury roboczej na punkty wyjściowe

Dla każdego punktu wyjściowego etykieta pochodzi z punktu base wskazanego
przez point_map. Opcjonalnie: tylko punkty niesklasyfikowane, pomijanie
klas (kody ASPRS), zapis kolorów klas zamiast kodów, ewaluacja.
"""

import numpy as np
from typing import Iterable, List, Optional
import logging

from ..core.labels import Label, LABEL_UNCLASSIFIED, train_to_asprs_codes
from ..core.point_set import PointSet
from .statistics import Statistics

logger = logging.getLogger(__name__)


class OutputRemapper:
    """
    Usage:
        remapper = OutputRemapper(labels, skip=[6], evaluate=True, stats_file="stats.json")
        stats = remapper.remap(point_set, base_labels)
    """

    def __init__(
        self,
        labels: List[Label],
        use_colors: bool = False,
        unclassified_only: bool = False,
        evaluate: bool = False,
        skip: Optional[Iterable[int]] = None,
        stats_file: Optional[str] = None
    ):
        """
        Args:
            labels: katalog klas (indeks = kod treningowy)
            use_colors: zapisuj kolor klasy zamiast kodu ASPRS
            unclassified_only: nie nadpisuj punktów z istniejąca klasyfikacja
            evaluate: licz statystyki względem etykiet z pliku
            skip: kody ASPRS, których nie zapisujemy (poza 0-255 ignorowane)
            stats_file: plik JSON na statystyki (opcjonalnie)
        """
        self.labels = labels
        self.use_colors = use_colors
        self.unclassified_only = unclassified_only
        self.evaluate = evaluate
        self.stats_file = stats_file

        self.skip_map = np.zeros(256, dtype=bool)
        for code in skip or []:
            if 0 <= code <= 255:
                self.skip_map[code] = True

        self.asprs_codes = np.array([label.get_asprs_code() for label in labels], dtype=np.uint8)
        self.colors = np.array([label.get_color() for label in labels], dtype=np.uint8)
        self.train_to_asprs = train_to_asprs_codes()

    def remap(self, point_set: PointSet, base_labels: np.ndarray) -> Optional[Statistics]:
        """
        Zapisuje wynik do point_set.labels (kody ASPRS) lub point_set.colors

        Args:
            point_set: chmura wyjściowa (z point_map do chmury base)
            base_labels: (N_base,) kody treningowe punktów base

        Returns:
            Statistics jeśli evaluate, inaczej None
        """
        n_points = point_set.count()
        has_labels = point_set.has_labels()

        best = np.asarray(base_labels, dtype=np.int64)[point_set.point_map]

        stats = None
        if self.evaluate:
            if has_labels:
                stats = Statistics(self.labels)
                stats.record_many(best, point_set.labels)
            else:
                logger.warning("Evaluation requested but the point cloud has no labels")

        update = np.ones(n_points, dtype=bool)
        if self.unclassified_only and has_labels:
            update &= point_set.labels == LABEL_UNCLASSIFIED

        asprs = self.asprs_codes[best]
        update &= ~self.skip_map[asprs]

        if has_labels:
            # powrót z kodów treningowych do ASPRS
            if point_set.source_codes is not None:
                out_labels = point_set.source_codes.astype(np.uint8).copy()
            else:
                out_labels = self.train_to_asprs[point_set.labels]
        else:
            out_labels = np.zeros(n_points, dtype=np.uint8)

        if self.use_colors:
            colors = point_set.colors if point_set.has_colors() else np.zeros((n_points, 3), dtype=np.uint8)
            colors = colors.copy()
            colors[update] = self.colors[best[update]]
            point_set.colors = colors
        else:
            out_labels[update] = asprs[update]

        if has_labels or not self.use_colors:
            point_set.labels = out_labels

        logger.info(f"Updated {int(update.sum()):,} / {n_points:,} points")

        if stats is not None:
            stats.finalize()
            stats.print()
            if self.stats_file:
                stats.write_to_file(self.stats_file)

        return stats
