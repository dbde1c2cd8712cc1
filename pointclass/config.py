"""
Centralna konfiguracja pakietu pointclass

Wszystkie stale i parametry domyślne w jednym miejscu dla łatwej modyfikacji.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClassificationConfig:
    """Konfiguracja klasyfikacji i regularyzacji"""
    REGULARIZATION: str = "local_smooth"
    REG_RADIUS: float = 2.5  # metry
    N_THREADS: int = 4
    CHUNK_SIZE: int = 50_000  # punktów na zadanie w puli wątków


@dataclass(frozen=True)
class GraphCutConfig:
    """Konfiguracja regularyzacji graph-cut"""
    MIN_SUBDIVISIONS: int = 4
    STRENGTH: float = 0.2  # waga krawędzi
    NEIGHBORS: int = 12
    PROBABILITY_EPSILON: float = 1e-10  # dolne ograniczenie dla -log(p)
    MAX_CYCLES: int = 5  # cykle alpha-expansion


@dataclass(frozen=True)
class TrainingDefaults:
    """Domyślne parametry treningu"""
    NUM_SCALES: int = 6
    RADIUS: float = 0.6  # promień sąsiedztwa na pierwszej skali (metry)
    START_RESOLUTION: float = -1.0  # -1 = automatycznie (średnia odległość punktów)
    MAX_SAMPLES: int = 100_000
    N_TREES: int = 100
    MAX_DEPTH: int = 20
    MIN_SAMPLES_SPLIT: int = 4
    K_NEIGHBORS_MAX: int = 16


# Singleton instances
CLASSIFICATION = ClassificationConfig()
GRAPHCUT = GraphCutConfig()
TRAINING = TrainingDefaults()
