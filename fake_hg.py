"""
Minimal stand-ins for mercurial's repository and changectx objects, with
just the methods the walker calls.
"""
import hashlib


class FakeManifest(dict):
    def __init__(self, files):
        super().__init__({f: hashlib.sha1(data).digest() for f, (data, flags) in files.items()})
        self._flags = {f: flags for f, (data, flags) in files.items()}

    def flags(self, f):
        return self._flags.get(f, b"")


class FakeFileCtx:
    def __init__(self, data, flags):
        self._data = data
        self._flags = flags

    def data(self):
        return self._data

    def flags(self):
        return self._flags


class FakeCtx:
    def __init__(self, rev, files=None, changed=None, parents=None, user=b"joe",
                 date=(1000000000.0, 0), description=b"message"):
        self._rev = rev
        # path -> (data, flags): the whole tree at this changeset
        self._files = dict(files or {})
        self._changed = list(changed or [])
        self._parents = list(parents or [])
        self._user = user
        self._date = date
        self._description = description

    def rev(self):
        return self._rev

    def node(self):
        # the null revision -1 gets the all-zero node, like mercurial's nullid
        return (self._rev + 1).to_bytes(20, "big")

    def hex(self):
        return self.node().hex().encode()

    def parents(self):
        return self._parents

    def user(self):
        return self._user

    def date(self):
        return self._date

    def description(self):
        return self._description

    def files(self):
        return self._changed

    def manifest(self):
        return FakeManifest(self._files)

    def __contains__(self, f):
        return f in self._files

    def filectx(self, f):
        data, flags = self._files[f]
        return FakeFileCtx(data, flags)


NULL = FakeCtx(-1)


class FakeRepo:
    def __init__(self, ctxs=()):
        self.ctxs = list(ctxs)

    def add(self, files, changed, parents=None, **kwargs):
        """Append a changeset; the default parent is the previous one."""
        if parents is None:
            parents = [self.ctxs[-1] if self.ctxs else NULL]
        ctx = FakeCtx(len(self.ctxs), files, changed, parents, **kwargs)
        self.ctxs.append(ctx)
        return ctx

    def __len__(self):
        return len(self.ctxs)

    def __getitem__(self, key):
        if isinstance(key, int):
            return self.ctxs[key]
        for ctx in self.ctxs:
            if ctx.node() == key:
                return ctx
        raise KeyError(key)

    def __contains__(self, key):
        return any(ctx.node() == key for ctx in self.ctxs)
