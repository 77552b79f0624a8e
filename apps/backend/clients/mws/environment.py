import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class EnvironmentInfo:
    """ Runtime details reported to MWS in the User-Agent header. """
    language: str
    platform: str

    @classmethod
    def detect(cls) -> "EnvironmentInfo":
        """Reads the interpreter and OS details of the current process."""
        return cls(
            language=f"Python/{platform.python_version()}",
            platform=f"{platform.system()}/{platform.machine()}/{platform.release()}",
        )


def format_user_agent(application_name: str, application_version: str, environment: EnvironmentInfo) -> str:
    return (
        f"{application_name}/{application_version} "
        f"(Language={environment.language}; Platform={environment.platform})"
    )
