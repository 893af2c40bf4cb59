import pandas as pd
import pytest

from data_quality_rules.domain.models.dataset import Dataset

CYL = [6, 6, 4, 6, 8, 6, 8, 4, 4, 6, 6, 8, 8, 8, 8, 8, 8, 4, 4, 4, 4, 8, 8, 8, 8, 4, 4, 4, 8, 6, 8, 4]
MPG = [
    21.0, 21.0, 22.8, 21.4, 18.7, 18.1, 14.3, 24.4, 22.8, 19.2, 17.8, 16.4, 17.3, 15.2, 10.4, 10.4,
    14.7, 32.4, 30.4, 33.9, 21.5, 15.5, 15.2, 13.3, 19.2, 27.3, 26.0, 30.4, 15.8, 19.7, 15.0, 21.4,
]


@pytest.fixture
def mtcars_frame() -> pd.DataFrame:
    return pd.DataFrame({"cyl": CYL, "mpg": MPG})


@pytest.fixture
def mtcars(mtcars_frame: pd.DataFrame) -> Dataset:
    return Dataset.from_frame(mtcars_frame, identifier="mtcars")
