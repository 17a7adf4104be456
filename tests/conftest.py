import numpy as np
import pytest


@pytest.fixture
def edge_mask():
    """Factory for a boolean (ny, nx) mask of the plate's edge cells."""
    def make(nx, ny):
        mask = np.zeros((ny, nx), dtype=bool)
        mask[:, 0] = mask[:, -1] = True
        mask[0, :] = mask[-1, :] = True
        return mask
    return make
