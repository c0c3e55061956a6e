"""Abstract interfaces the host package manager provides to Opus."""

from abc import ABC, abstractmethod
from pathlib import Path

from opus.core.package import Package


class PackageRepository(ABC):
    """The host's view of currently installed packages.

    Opus never installs packages itself; it only copies files out of
    packages the host has already placed on disk.
    """

    @abstractmethod
    def get_packages(self) -> list[Package]:
        """Get all currently installed packages.

        Returns:
            List of installed packages
        """
        ...

    def get_install_path(self, package: Package) -> Path:
        """Get the installation root of a package.

        Default implementation returns the path the package was loaded from.
        """
        return package.path

    def find_package(self, name: str) -> Package | None:
        """Find an installed package by name.

        Args:
            name: Package name

        Returns:
            The package, or None if it is not installed
        """
        for package in self.get_packages():
            if package.name == name:
                return package
        return None


class IOInterface(ABC):
    """Line output and prompting supplied by the host."""

    @abstractmethod
    def write(self, message: str = "") -> None:
        """Write a line of output to the user."""
        ...

    @abstractmethod
    def ask(self, question: str, default: str) -> str:
        """Ask the user a free-text question.

        Args:
            question: Prompt text
            default: Answer used when the user just presses enter

        Returns:
            The user's answer
        """
        ...

    def write_diff(self, diff: str) -> None:
        """Show a unified diff. Default implementation writes it as plain text."""
        self.write(diff)
