import enum
import sys
from types import SimpleNamespace

from rich.pretty import pprint

from progopts import *
from progopts.utils import Unset


class SomeType(enum.IntEnum):
    ONE = 1
    TWO = 2


def main(arguments=Unset):
    settings = SimpleNamespace(b=False, l=0, count=0, v=[], st=None, values=[])

    options = (
        ProgramOptions("main.py", "This is a demonstration program", shell=True)
        .register_positional("count", (settings, "count"), "a number", type=uint)
        .register_positional_vector("pos2", settings.values, depends_on("count"), "a multiple-valued positional")
        .register_value("u", "uint", (settings, "l"), "an argument with a single value", type=uint)
        .register_vector("v", "vector", settings.v, 3, "an argument with 3 values", type=int)
        .register_flag("b", "bool", (settings, "b"), "a boolean flag")
        .register_flag("O", "ONE", (settings, "st"), "a flag with specific value ONE", assign=SomeType.ONE)
        .register_flag("T", "TWO", (settings, "st"), "a flag with specific value TWO", assign=SomeType.TWO)
    )

    match options.process(arguments):
        case Outcome.PARSE_ERROR:
            return 1
        case Outcome.HELP_REQUESTED:
            return 0

    if not settings.v:
        settings.v.extend([0, 0, 0])

    pprint(vars(settings))
    return 0


if __name__ == '__main__':
    sys.exit(main())
