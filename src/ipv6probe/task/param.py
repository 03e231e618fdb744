import functools

from schema import Schema, SchemaError

from fate.task.param import read

import ipv6probe.task


class ParamTask:
    """Callable wrapper to first read and validate task input parameters
    as specified by `schema`.

    This wrapper is deployed by the decorator `require`.

    Parameters are read from the task's standard input (via Fate) unless
    given explicitly, as the keyword argument `params`, in which case
    they are merely validated. The latter permits embedding of the
    measurement in another process.

    See: `require`.

    """
    def __init__(self, schema, func):
        self.schema = schema

        # assign func's __module__, __name__, etc.
        # (but DON'T update __dict__)
        #
        # (also assigns __wrapped__)
        functools.update_wrapper(self, func, updated=())

    def __repr__(self):
        return repr(self.__wrapped__)

    def __call__(self, *args, params=None, **kwargs):
        try:
            if params is None:
                params = read(schema=self.schema)
            else:
                params = Schema(self.schema).validate(params)
        except SchemaError as exc:
            ipv6probe.task.log.critical(error=str(exc), msg="input error")
            return ipv6probe.task.status.conf_error

        return self.__wrapped__(params, *args, **kwargs)


class require:
    """Wrap the decorated callable to first read and schema-validate
    task input parameters.

    Having validated input, the wrapped callable is invoked with the
    cleaned parameters as its first argument.

    Upon validation error, the wrapped callable is *not* invoked. The
    error is logged and the appropriate status code returned.

    See: `ParamTask`.

    """
    def __init__(self, schema):
        self.schema = schema

    def __call__(self, func):
        return ParamTask(self.schema, func)
