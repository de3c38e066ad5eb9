"""VEP command line engine.

Runs the Ensembl VEP executable on the recoder input and replays its JSON
output. The VEP command is built from the RecoderConfig flags and options.
"""

import shutil
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Union

from varrecode.engine.base import EngineError
from varrecode.engine.json_output import JsonOutputEngine
from varrecode.utils.validation import check_vep_installed

# Config switch -> VEP argument, where they differ
FLAG_ARGUMENTS = {
    "hgvsc": "--hgvs",
    "hgvsp": "--hgvs",
}

INPUT_NAME = "input.txt"
OUTPUT_NAME = "vep_output.json"
WARNING_NAME = "vep_warnings.txt"

# Config option -> VEP argument, where they differ
OPTION_ARGUMENTS = {
    "cache_dir": "--dir_cache",
}


class VepCommandEngine(JsonOutputEngine):
    """Annotation engine running ``vep`` as a subprocess.

    VEP is started on the first call to next_annotation_line() with either the
    input data of a recode() call or ``input_file``.

    Attributes:
        vep_cmd (str): Name or path of the vep executable.
        input_file (Optional[Path]): Input used by recode_all().
        keep_files (bool): Keep the work directory and VEP files after each call.
    """

    def __init__(
        self,
        vep_cmd: str = "vep",
        input_file: Optional[Union[Path, str]] = None,
        work_dir: Optional[Union[Path, str]] = None,
        keep_files: bool = False,
    ):
        super().__init__()
        self.vep_cmd = vep_cmd
        self.input_file = Path(input_file).expanduser().resolve() if input_file else None
        self.keep_files = keep_files
        self._work_dir = Path(work_dir) if work_dir else None
        self._owns_work_dir = work_dir is None

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            self._work_dir = Path(tempfile.mkdtemp(prefix="varrecode_"))
        self._work_dir.mkdir(parents=True, exist_ok=True)
        return self._work_dir

    def build_command(self, input_path: Path, output_path: Path, warning_path: Path) -> List[str]:
        """Build the VEP command line for the configured flags and options."""
        if self.config is None:
            raise EngineError("Engine used before configure()")

        cmd = [
            self.vep_cmd,
            "--input_file", str(input_path),
            "--output_file", str(output_path),
            "--warning_file", str(warning_path),
            "--force_overwrite",
        ]

        arguments = []
        for flag in sorted(self.config.flags | {"json"}):
            argument = FLAG_ARGUMENTS.get(flag, f"--{flag}")
            if argument not in arguments:
                arguments.append(argument)
        cmd.extend(arguments)

        for key, value in sorted(self.config.options.items()):
            if value is None or value is False:
                continue
            cmd.append(OPTION_ARGUMENTS.get(key, f"--{key}"))
            if value is not True:
                cmd.append(str(value))
        return cmd

    def _prepare_input(self) -> Path:
        if self.input_data is not None:
            input_path = self.work_dir / INPUT_NAME
            input_path.write_text(self.input_data.rstrip("\n") + "\n")
            return input_path
        if self.input_file is not None:
            if not self.input_file.exists():
                raise EngineError(f"Input file not found: {self.input_file}")
            return self.input_file
        raise EngineError("No input data supplied")

    def input_names(self) -> Optional[List[str]]:
        """Input lines as VEP numbers them in its warnings."""
        if self.input_data is not None:
            text = self.input_data
        elif self.input_file is not None and self.input_file.exists():
            text = self.input_file.read_text()
        else:
            return None
        return [line.strip() for line in text.splitlines()]

    def run(self) -> Path:
        """Run VEP and return the path of its JSON output."""
        try:
            check_vep_installed(self.vep_cmd)
        except FileNotFoundError as e:
            raise EngineError(str(e)) from e

        input_path = self._prepare_input()
        output_path = self.work_dir / OUTPUT_NAME
        warning_path = self.work_dir / WARNING_NAME
        cmd = self.build_command(input_path, output_path, warning_path)

        self.logger.info(f"Running VEP on {input_path}")
        self.logger.debug(f"Command: {' '.join(cmd)}")
        start_time = time.time()
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            self.logger.error(f"VEP failed with exit code {e.returncode}: {e.stderr}")
            raise EngineError(f"VEP failed with exit code {e.returncode}") from e
        except OSError as e:
            self.logger.error(f"Could not start VEP: {e}")
            raise EngineError(f"Could not start VEP: {e}") from e
        self.logger.info(f"Command completed in {time.time() - start_time:.3f}s: {self.vep_cmd}")

        self.warning_file = warning_path
        return output_path

    def _iter_records(self) -> Iterator[Mapping[str, Any]]:
        self.source = self.run()
        return self._iter_source()

    def _clean_work_dir(self) -> None:
        if self._work_dir is None:
            return
        if self.keep_files:
            self.logger.debug(f"Keeping VEP files in {self._work_dir}")
            return
        if self._owns_work_dir:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            self._work_dir = None
        else:
            for name in (INPUT_NAME, OUTPUT_NAME, WARNING_NAME):
                (self._work_dir / name).unlink(missing_ok=True)

    def reset(self) -> None:
        super().reset()
        self._clean_work_dir()
        self.source = None
        self.warning_file = None

    def finish(self) -> None:
        super().finish()
        self._clean_work_dir()
