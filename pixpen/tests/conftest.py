import pytest

from pixpen.tests.helpers import mask_data_url


@pytest.fixture
def two_object_entries() -> list[dict]:
    return [
        {"box_2d": [100, 100, 500, 500], "mask": mask_data_url(), "label": "sofa"},
        {"box_2d": [200, 200, 400, 400], "mask": mask_data_url(16, 16), "label": "cushion"},
    ]
