import os
import sys

from ldap3 import LEVEL, MODIFY_ADD, SUBTREE, ALL, Connection, Server
from ldap3.core.exceptions import LDAPException, LDAPOperationResult
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import parse_dn

from constants import *


class LdapService:
    def __init__(self, logger, connection: Connection = None, page_size: int = LDAP_PAGE_SIZE):
        self.logger = logger
        self.ldapConnection = connection
        self.page_size = page_size


    def connect(self) -> None:
        """
        Connect to the configured LDAP server.

        Exits with ERROR_LDAP_CONNECTION if the bind fails.
        """
        server_url = os.getenv("LDAP_Server")
        server_port = int(os.getenv("LDAP_Port", LDAP_PORT))
        use_ssl = os.getenv("LDAP_UseSSL", "false").strip().lower() in ("1", "true", "yes", "on")

        try:
            self.logger.info(f'Connecting to LDAP Server: {server_url}:{server_port}')

            server = Server(server_url, port=server_port, use_ssl=use_ssl, get_info=ALL)
            self.ldapConnection = Connection(
                server,
                user=os.getenv("LDAP_Username"),
                password=os.getenv("LDAP_Password"),
                auto_bind=True,
                raise_exceptions=True,
            )

            self.logger.info('LDAP Connection established...')

        except LDAPException as error:
            self.logger.error(f'Error connecting to LDAP Server {server_url}:{server_port}: {error}')
            sys.exit(ERROR_LDAP_CONNECTION)


    @staticmethod
    def _scope(recursive: bool):
        return SUBTREE if recursive else LEVEL


    @staticmethod
    def _domain_root(dn: str) -> str:
        """DC= components of a DN, the base of in-chain member searches."""
        components = [f"{attr}={value}" for attr, value, _ in parse_dn(dn) if attr.lower() == "dc"]
        return ",".join(components) if components else dn


    @staticmethod
    def _security_group_filter(name_value: str) -> str:
        """Security groups whose name matches name_value (already escaped, may end in *)."""
        return (
            f'(&(objectCategory=group)'
            f'(groupType:{MATCHING_RULE_BIT_AND}:={SECURITY_GROUP_FLAG})'
            f'(name={name_value}))'
        )


    def _paged_search(self, search_base: str, search_filter: str, attributes: list, search_scope) -> list:
        """Runs a paged search and returns the attribute dicts of the matching entries."""
        responses = self.ldapConnection.extend.standard.paged_search(
            search_base=search_base,
            search_filter=search_filter,
            search_scope=search_scope,
            attributes=attributes,
            paged_size=self.page_size,
            generator=False,
        )
        return [
            response for response in responses
            if isinstance(response, dict) and response.get("type") == "searchResEntry"
        ]


    def get_groups(self, group_ou: str, prefix: str, recursive: bool = False) -> list:
        """
        Retrieve the security groups under group_ou whose name starts with prefix.

        :return: List of (name, dn) tuples
        """
        search_filter = self._security_group_filter(f"{escape_filter_chars(prefix)}*")

        try:
            entries = self._paged_search(group_ou, search_filter, GROUP_ATTRIBUTES, self._scope(recursive))
        except LDAPException as error:
            self.logger.error(f"Error retrieving groups under {group_ou}: {error}")
            sys.exit(ERROR_LDAP_SEARCH_GROUPS)

        groups = [(entry["attributes"]["name"], entry["dn"]) for entry in entries]
        self.logger.info(f"Found {len(groups)} groups starting with '{prefix}' under {group_ou}")
        return groups


    def get_group_members(self, group_dn: str) -> set:
        """
        Names of all non-group objects that are members of the group,
        directly or through nested groups.

        Raises LDAPException on failure, callers decide whether it is fatal.
        """
        search_filter = (
            f'(&(!(objectCategory=group))'
            f'(memberOf:{MATCHING_RULE_IN_CHAIN}:={escape_filter_chars(group_dn)}))'
        )
        entries = self._paged_search(self._domain_root(group_dn), search_filter, MEMBER_ATTRIBUTES, SUBTREE)
        return {entry["attributes"]["name"] for entry in entries}


    def get_computers(self, ou: str, recursive: bool = False) -> list:
        """
        Retrieve the computer objects under ou.

        :return: List of (name, sid) tuples in directory order
        """
        try:
            entries = self._paged_search(ou, '(objectCategory=computer)', COMPUTER_ATTRIBUTES, self._scope(recursive))
        except LDAPException as error:
            self.logger.error(f"Error retrieving computers under {ou}: {error}")
            sys.exit(ERROR_LDAP_SEARCH_COMPUTERS)

        computers = [(entry["attributes"]["name"], str(entry["attributes"]["objectSid"])) for entry in entries]
        self.logger.info(f"Found {len(computers)} computers under {ou}")
        return computers


    def find_group(self, name: str, group_ou: str, recursive: bool = False):
        """
        DN of the security group called name under group_ou, or None.

        Uses the same filter and scope as get_groups so only groups of the
        inventory can be found.
        """
        search_filter = self._security_group_filter(escape_filter_chars(name))
        entries = self._paged_search(group_ou, search_filter, GROUP_ATTRIBUTES, self._scope(recursive))
        return entries[0]["dn"] if entries else None


    def add_group_member(self, group_dn: str, sid: str) -> None:
        """
        Adds the object with the given security identifier to the group.

        A value that is already present is accepted; every other failure raises.
        """
        try:
            self.ldapConnection.modify(group_dn, {"member": [(MODIFY_ADD, [f"<SID={sid}>"])]})
        except LDAPOperationResult as error:
            if error.result not in MEMBER_ALREADY_PRESENT:
                raise
            self.logger.info(f"{sid} already listed in {group_dn}")


    def disconnect(self):
        if self.ldapConnection is None:
            return
        self.ldapConnection.unbind()
        self.ldapConnection = None
        self.logger.info("LDAP Connection closed...")
