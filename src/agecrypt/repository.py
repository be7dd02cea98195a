import logging
import os
import pathlib
import shutil
from typing import List, Optional

from agecrypt import ConfigurationError
from agecrypt.utils import CmdExecutionError
from agecrypt.utils import cmd as cmd_

logger = logging.getLogger(__name__)

SIDECAR_DIR = "git-agecrypt"


def cmd(args, *a, **kw):
    return cmd_(["git"] + list(args), *a, env={"LANG": "C", "LC_ALL": "C"}, **kw)


class Repository(object):
    """The git repository git-agecrypt operates in.

    `workdir` is the top of the work tree, `git_dir` the (absolute) git
    directory which also keeps the sidecar files.
    """

    def __init__(self, workdir, git_dir):
        self.workdir = pathlib.Path(workdir)
        self.git_dir = pathlib.Path(git_dir)

    @classmethod
    def from_current_dir(cls, cwd=None) -> "Repository":
        args = ["rev-parse", "--show-toplevel", "--absolute-git-dir"]
        if cwd is not None:
            args = ["-C", str(cwd)] + args
        try:
            stdout, _ = cmd(args)
        except CmdExecutionError as e:
            raise ConfigurationError.from_context(
                "Not inside a git work tree ({})".format(e.stderr.strip())
            ) from e
        workdir, git_dir = stdout.strip().splitlines()
        return cls(workdir, git_dir)

    def git(self, *args, **kw):
        return cmd(["-C", str(self.workdir)] + list(args), **kw)

    # git config

    def get_config_values(self, key) -> List[str]:
        # Exit code 1 means the key is not set.
        stdout, _ = self.git(
            "config", "--get-all", key, acceptable_returncodes=[0, 1])
        return [line for line in stdout.splitlines() if line]

    def add_config_value(self, key, value):
        if value in self.get_config_values(key):
            return
        self.git("config", "--add", key, value)

    def remove_config_value(self, key, value):
        if value not in self.get_config_values(key):
            return
        remaining = [v for v in self.get_config_values(key) if v != value]
        self.git("config", "--unset-all", key)
        for v in remaining:
            self.git("config", "--add", key, v)

    def set_config(self, key, value):
        self.git("config", key, value)

    def remove_config_section(self, section):
        # Exit code 128 means the section does not exist.
        self.git(
            "config", "--remove-section", section,
            acceptable_returncodes=[0, 128])

    # index

    def get_index_blob(self, path) -> Optional[bytes]:
        stdout, _ = self.git(
            "cat-file", "blob", ":{}".format(path),
            encoding=None, ignore_returncode=True)
        # An empty blob is indistinguishable from a missing one here, and
        # neither can be an age container.
        return stdout or None

    # sidecar

    @property
    def sidecar_dir(self) -> pathlib.Path:
        return self.git_dir / SIDECAR_DIR

    def _sidecar(self, path) -> pathlib.Path:
        return self.sidecar_dir / (
            pathlib.PurePosixPath(path).as_posix() + ".hash")

    def load_sidecar(self, path) -> Optional[str]:
        try:
            return self._sidecar(path).read_text().strip()
        except FileNotFoundError:
            return None

    def save_sidecar(self, path, value):
        sidecar = self._sidecar(path)
        os.makedirs(sidecar.parent, exist_ok=True)
        sidecar.write_text(value + "\n")
        logger.debug("Stored sidecar %s", sidecar)

    def remove_sidecars(self):
        if self.sidecar_dir.exists():
            shutil.rmtree(self.sidecar_dir)
