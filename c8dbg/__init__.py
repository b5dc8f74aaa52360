#!/usr/bin/env python3

"""
Main Startup Module

Simply call main(args) to start the emulator, replacing args with a dictionary
of options.  This can be done via the Terminal or GUI.  The return value is
the process exit code: 0 if the program halted or was closed, 1 if anything
went fatally wrong.

All options must be supplied.  Defaults can be specified with a 'None'.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import sys
from .constants import APP_INTRO, APP_COPYRIGHT, INSTRUCTION_SETS, RUN_MODE_DEBUG
from .cpu import CPU, CPUError
from .debugger import Debugger, DebuggerError
from .framebuffer import Framebuffer, FramebufferError
from .hostio import Loader, LoadError
from .inputs.i_null import InputsError
from .machine import Machine, MachineError
from .ram import RAMError
from .renderers.r_null import RendererError
from .stack import StackError

DEFAULT_CLOCK_SPEED = 1000  # Operations per second in normal mode


class StartupError(Exception):
    pass


# Anything in here stops the emulator with exit code 1
FATAL_ERRORS = (
    StartupError, LoadError, MachineError, RAMError, StackError, CPUError, DebuggerError, FramebufferError,
    InputsError, RendererError
)


def select_plugins(opt_renderer, debug_mode):
    # The debugger talks over the terminal, so pick text output for it.  Otherwise try PyGame first, then text.
    auto_select_renderer = opt_renderer is None

    if auto_select_renderer:
        opt_renderer = "text" if debug_mode else "pygame"

    # flake8: noqa: F401
    if opt_renderer == "pygame":
        # pylint: disable=unused-import, import-outside-toplevel, raise-missing-from
        try:
            import pygame
        except ImportError:
            if auto_select_renderer:
                opt_renderer = "text"
            else:
                raise StartupError(
                    "PyGame does not appear to be installed."
                )
        else:
            from .inputs.i_pygame import Inputs
            from .renderers.r_pygame import Renderer

    if opt_renderer == "text":
        # pylint: disable=import-outside-toplevel
        from .inputs.i_stdin import Inputs
        from .renderers.r_text import Renderer

    if opt_renderer == "null":
        # pylint: disable=import-outside-toplevel
        from .inputs.i_null import Inputs
        from .renderers.r_null import Renderer

    return Renderer, Inputs


def main(args):
    print("".join((APP_INTRO, APP_COPYRIGHT)))

    debug_mode = args["mode"] == RUN_MODE_DEBUG
    debugger = Debugger()
    renderer = None
    inputs = None
    cpu = None

    try:
        quirks = INSTRUCTION_SETS.get(args["instruction_set"])

        if quirks is None:
            raise StartupError("Unknown instruction set '{}'".format(args["instruction_set"]))

        # Read the ROM before anything else starts up, so a bad file never opens a window
        rom = Loader().load_binary(args["filename"])

        # Set up a new rendering system, and initialise the framebuffer attached to it
        Renderer, Inputs = select_plugins(args["renderer"], debug_mode)
        renderer = Renderer(scale=args["scale"], pygame_palette=args["pygame_palette"])
        framebuffer = Framebuffer(renderer)

        # Reset the machine (font in RAM, registers zeroed) and write the ROM at the default address
        machine = Machine(framebuffer, quirks)
        machine.load_program(rom)

        # Set up host inputs, and link to the chosen rendering module in case it provides inputs too
        inputs = Inputs(args["keymap"], renderer)

        clock_speed = args["clock_speed"]

        if clock_speed is None:
            clock_speed = DEFAULT_CLOCK_SPEED

        cpu = CPU(machine, inputs, clock_speed=clock_speed, seed=args["seed"])

        if debug_mode:
            debugger.run(cpu)
        else:
            cpu.run()
    except FATAL_ERRORS as err:
        print("Emulation halted.\n\n{}{}".format(APP_INTRO, err), file=sys.stderr)

        if cpu is not None:
            print("\nDebug info:\n{}".format(debugger.crash_report(cpu)), file=sys.stderr)

        return 1
    finally:
        # Shut down the rendering framework.  __del__ cannot be relied upon when using PyPy
        if inputs is not None:
            inputs.shutdown()

        if renderer is not None:
            renderer.shutdown()

    return 0
