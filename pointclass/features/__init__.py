"""
Features Module - cechy geometryczne w wielu skalach
"""

from .scales import Scale, compute_scales, get_features, feature_names, FEATURE_NAMES

__all__ = [
    'Scale',
    'compute_scales',
    'get_features',
    'feature_names',
    'FEATURE_NAMES'
]
