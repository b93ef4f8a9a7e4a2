import os
from contextlib import contextmanager
from pathlib import Path
from typing import Union


@contextmanager
def change_cwd(path: Union[str, Path]):
    cwd = os.getcwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(cwd)
