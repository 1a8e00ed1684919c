from lsprotocol.types import INITIALIZE, InitializeParams
from pygls.protocol import LanguageServerProtocol, lsp_method

from hazels.lsp.session import negotiate


class HazeLanguageServerProtocol(LanguageServerProtocol):
    """
    Protocol that adjusts the initialize result to the session.

    pygls builds the server capabilities from the registered features after
    the user initialize handler has run, and always announces workspace
    folders. Negotiation is applied to that built result instead.
    """

    @lsp_method(INITIALIZE)
    def lsp_initialize(self, params: InitializeParams):
        result = yield from super().lsp_initialize(params)

        session = self._server.session
        if session is not None:
            negotiate(session, result.capabilities)

        return result
