import hashlib
import logging
import os
import shlex
import subprocess

from agecrypt import ReportingException, output

logger = logging.getLogger(__name__)


class CmdExecutionError(ReportingException, RuntimeError):

    def __init__(self, cmd, returncode, stdout, stderr):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.args = (cmd, returncode, stdout, stderr)

    def __str__(self):
        stderr = self.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        return "Exitcode {} while calling: {}\n{}".format(
            self.returncode, self.cmd, stderr)

    def report(self):
        output.error(self.cmd)
        output.tabular("Return code", str(self.returncode), red=True)
        output.line("STDERR", red=True)
        stderr = self.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        output.annotate(stderr)


def cmd(cmd,
        ignore_returncode=False,
        env=None,
        acceptable_returncodes=[0],
        encoding="utf-8",
        input=None):
    """Run `cmd` through the shell and return (stdout, stderr).

    With `encoding=None` the captured output is returned as bytes. The call
    blocks until the process exits; there is no timeout.
    """
    if not isinstance(cmd, str):
        # We use `shell=True`, so the command needs to be a single string and
        # we need to pay attention to shell quoting.
        cmd = " ".join(shlex.quote(arg) for arg in cmd)
    if env is not None:
        add_to_env = env
        env = os.environ.copy()
        env.update(add_to_env)
    logger.debug("cmd: %s", cmd)
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.PIPE,
        shell=True,
        env=env)
    stdout, stderr = process.communicate(input)
    if encoding is not None:
        stdout = stdout.decode(encoding, errors="replace")
        stderr = stderr.decode(encoding, errors="replace")
    if process.returncode not in acceptable_returncodes:
        if not ignore_returncode:
            raise CmdExecutionError(cmd, process.returncode, stdout, stderr)
    return stdout, stderr


def digest(*chunks):
    h = hashlib.sha256()
    for chunk in chunks:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        # length prefix keeps ("ab", "c") and ("a", "bc") apart
        h.update(len(chunk).to_bytes(8, "big"))
        h.update(chunk)
    return h.hexdigest()
