# Copyright 2025 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import bz2
import gzip
import lzma
import os
import pathlib
import shutil
import tarfile
import zipfile
from typing import Literal, Optional

import rarfile
import rpmfile
from loguru import logger

import sediment.plugin
from sediment.configmanager import ConfigManager

RAR_SUPPORT = {"enabled": False}


class UnpackError(Exception):
    """Raised when an archive cannot be extracted."""


@sediment.plugin.hookimpl(trylast=True)
def identify_archive_type(filepath: str) -> Optional[str]:
    try:
        with open(filepath, "rb") as f:
            magic_bytes = f.read(265)
    except OSError:
        return None
    if magic_bytes[:4] == b"PK\x03\x04":
        return "ZIP"
    if magic_bytes[:2] == b"\x1f\x8b":
        return "GZIP"
    if magic_bytes[:3] == b"BZh":
        return "BZIP2"
    if magic_bytes[:6] == b"\xfd7zXZ\x00":
        return "XZ"
    if magic_bytes[257:262] == b"ustar":
        return "TAR"
    if magic_bytes[:4] == b"\xed\xab\xee\xdb":
        return "RPM"
    if magic_bytes[:7] == b"Rar!\x1a\x07\x00" or magic_bytes[:8] == b"Rar!\x1a\x07\x01\x00":
        return "RAR" if RAR_SUPPORT["enabled"] else None
    return None


@sediment.plugin.hookimpl(trylast=True)
def unpack_archive(filepath: str, archive_type: str, output_dir: str) -> Optional[bool]:
    if archive_type == "ZIP":
        decompress_zip_file(filepath, output_dir)
    elif archive_type == "TAR":
        extract_tar_file(filepath, output_dir)
    elif archive_type in {"GZIP", "BZIP2", "XZ"}:
        tar_modes = {
            "GZIP": "r:gz",
            "BZIP2": "r:bz2",
            "XZ": "r:xz",
        }
        try:
            extract_tar_file(filepath, output_dir, tar_modes[archive_type])
        except tarfile.ReadError:
            # not a compressed tar file; decompress the single file instead
            clear_dir(output_dir)
            decompress_file(filepath, output_dir, archive_type)
    elif archive_type == "RAR":
        decompress_rar_file(filepath, output_dir)
    elif archive_type == "RPM":
        extract_rpm_payload(filepath, output_dir)
    else:
        return None
    return True


def clear_dir(directory: str) -> None:
    for entry in os.scandir(directory):
        if entry.is_dir(follow_symlinks=False):
            shutil.rmtree(entry.path)
        else:
            os.unlink(entry.path)


def decompress_zip_file(filename: str, output_folder: str) -> None:
    try:
        with zipfile.ZipFile(filename, "r") as f:
            f.extractall(path=output_folder)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, RuntimeError) as e:
        raise UnpackError(f"Error extracting ZIP file {filename}: {e}") from e
    logger.debug(f"Extracted ZIP contents to {output_folder}")


def decompress_file(
    filename: str, output_folder: str, compression_type: Literal["GZIP", "BZIP2", "XZ"]
) -> None:
    filepath = pathlib.Path(filename)
    output_filename = filepath.name

    extensions = {
        "GZIP": ".gz",
        "BZIP2": ".bz2",
        "XZ": ".xz",
    }
    if filename.endswith(extensions[compression_type]):
        output_filename = filepath.stem

    modules = {
        "GZIP": gzip,
        "BZIP2": bz2,
        "XZ": lzma,
    }
    try:
        module = modules[compression_type]
        with module.open(filename, "rb") as f_in:
            with open(os.path.join(output_folder, output_filename), "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
    except (OSError, EOFError, lzma.LZMAError) as e:
        raise UnpackError(f"Unable to decompress {filename}: {e}") from e


def extract_tar_file(
    filename: str,
    output_folder: str,
    open_mode: Literal["r", "r:*", "r:", "r:gz", "r:bz2", "r:xz"] = "r",
) -> None:
    """Extracts a tar file; a tarfile.ReadError is passed on so callers can try other formats."""
    try:
        with tarfile.open(filename, open_mode) as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(path=output_folder, filter="data")
            else:
                tar.extractall(path=output_folder)
    except tarfile.ReadError:
        raise
    except (tarfile.TarError, OSError, EOFError) as e:
        raise UnpackError(f"Error extracting tar file {filename}: {e}") from e
    logger.debug(f"Extracted TAR contents to {output_folder}")


def decompress_rar_file(filename: str, output_folder: str) -> None:
    try:
        with rarfile.RarFile(filename) as rf:
            rf.extractall(path=output_folder)
    except rarfile.Error as e:
        raise UnpackError(f"Error extracting rar file {filename}: {e}") from e
    logger.debug(f"Extracted RAR contents to {output_folder}")


def extract_rpm_payload(filename: str, output_folder: str) -> None:
    root = pathlib.Path(output_folder).resolve()
    try:
        with rpmfile.open(filename) as rpm:
            for member in rpm.getmembers():
                name = member.name
                while name.startswith("./"):
                    name = name[2:]
                target = (root / name.lstrip("/")).resolve()
                if root not in target.parents:
                    logger.warning(f"Skipping {member.name} in {filename}: outside of the archive")
                    continue
                if member.isdir:
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with rpm.extractfile(member) as f_in, open(target, "wb") as f_out:
                    shutil.copyfileobj(f_in, f_out)
    except (OSError, EOFError, KeyError, ValueError, NotImplementedError) as e:
        raise UnpackError(f"Error extracting rpm payload of {filename}: {e}") from e
    logger.debug(f"Extracted RPM payload to {output_folder}")


def setup_rar_support() -> None:
    RAR_SUPPORT["enabled"] = False

    should_enable_rar = ConfigManager().get("rar", "enabled", True)
    if should_enable_rar:
        try:
            result = rarfile.tool_setup()
            if result.setup["open_cmd"][0] in ("UNRAR_TOOL", "UNAR_TOOL"):
                RAR_SUPPORT["enabled"] = True
                return
        except rarfile.RarCannotExec:
            pass
        logger.warning(
            "Install 'Unrar' or 'unar' tool for RAR archive decompression. RAR decompression disabled until installed."
        )


@sediment.plugin.hookimpl
def init_hook(command_name: Optional[str] = None) -> None:
    if command_name == "scan":
        setup_rar_support()


@sediment.plugin.hookimpl
def short_name() -> Optional[str]:
    return "unpack"
