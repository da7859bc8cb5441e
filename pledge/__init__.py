from . import logmod
from .logmod import log
from .errors import PledgeError, NoApplication
from .defer import Cell, Continuation, Finalizer, Deferred, succeed, fail
from .timers import call_soon, call_later, call_every
from .app import Application
