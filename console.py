"""Terminal helpers shared by the Cortex Cloud command-line tools"""

import argparse
from typing import Dict, List


def prompt_confirmation(question: str) -> bool:
    """Ask a [y/N] question on the terminal; anything but y/yes (or no terminal) is a no"""
    try:
        answer = input(f"❓ {question} [y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def confirm(question: str, auto_approve: bool) -> bool:
    if auto_approve:
        return True
    return prompt_confirmation(question)


def parse_parameters(values: List[str]) -> Dict[str, str]:
    """Turn repeated KEY=VALUE arguments into a dict"""
    parameters = {}
    for value in values or []:
        if '=' not in value:
            raise argparse.ArgumentTypeError(f"Invalid parameter '{value}', expected KEY=VALUE")
        key, _, val = value.partition('=')
        parameters[key] = val
    return parameters
