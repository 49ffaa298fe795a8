import sys

from ldap3.core.exceptions import LDAPException

from constants import ERROR_LDAP_SEARCH_MEMBERS
from hash_service import assign_machine
from log_service import log_success
from models import GroupMembershipIndex, Machine, Outcome, ShardResult, ShardSettings


class GroupSharder:
    """
    Spreads computer objects over the groups prefix0..prefixF.

    One run reads the membership of every sharding group, enumerates the
    machine containers, then adds each machine to the group picked by the
    last hex digit of its name hash unless it is already a member.
    """

    def __init__(self, ldap, settings: ShardSettings, logger):
        self._ldap = ldap
        self._settings = settings
        self.logger = logger


    def run(self) -> ShardResult:
        self.logger.info('Starting group sharding process...')
        self._ldap.connect()
        try:
            index = self.build_group_inventory()
            computers = self.enumerate_machines()
            result = self.reconcile(computers, index)
            self.logger.info(f'Group sharding process complete: {result.summary()}')
            return result

        finally:
            self._ldap.disconnect()


    def build_group_inventory(self) -> GroupMembershipIndex:
        """
        Snapshot of the transitive membership of every group whose name
        starts with the configured prefix. Any read failure ends the run.
        """
        settings = self._settings
        memberships = {}

        for name, dn in self._ldap.get_groups(settings.group_ou, settings.group_prefix, settings.recursive):
            try:
                memberships[name] = self._ldap.get_group_members(dn)
            except LDAPException as error:
                self.logger.error(f"Error retrieving members of {dn}: {error}")
                sys.exit(ERROR_LDAP_SEARCH_MEMBERS)

            self.logger.info(f"Group {name} has {len(memberships[name])} members")

        index = GroupMembershipIndex(memberships)
        self.logger.info(f"Inventory of {len(index)} groups: {', '.join(index.groups)}")
        return index


    def enumerate_machines(self) -> list:
        """
        (name, sid) pairs of every computer under the machine containers,
        container by container. Names seen in an earlier container are only
        dropped when deduplication is switched on.
        """
        computers = []
        seen = set()

        for ou in self._settings.machine_ous:
            for name, sid in self._ldap.get_computers(ou, self._settings.recursive):
                key = name.casefold()
                if self._settings.deduplicate_machines and key in seen:
                    self.logger.info(f"Skipping duplicate machine {name} found under {ou}")
                    continue
                seen.add(key)
                computers.append((name, sid))

        return computers


    def reconcile(self, computers: list, index: GroupMembershipIndex) -> ShardResult:
        result = ShardResult()
        for name, sid in computers:
            machine = assign_machine(name, sid, self._settings.group_prefix, self._settings.hash_algorithm)
            result.record(machine, self.reconcile_machine(machine, index))
        return result


    def reconcile_machine(self, machine: Machine, index: GroupMembershipIndex) -> Outcome:
        """
        Makes sure one machine belongs to its assigned group.

        The membership check uses the snapshot only; a machine added earlier
        in this run is not reflected in it.
        """
        group = machine.assigned_group

        if index.is_member(group, machine.name):
            self.logger.info(f"{machine.name} is already a member of {group}")
            return Outcome.ALREADY_MEMBER

        if group not in index:
            self.logger.error(f"Unable to add {machine.name}: group {group} is not part of the inventory")
            return Outcome.ADD_FAILED

        if self._settings.dry_run:
            self.logger.info(f"[dry run] {machine.name} would be added to {group}")
            return Outcome.WOULD_ADD

        try:
            group_dn = self._ldap.find_group(group, self._settings.group_ou, self._settings.recursive)
            if group_dn is None:
                self.logger.error(f"Unable to add {machine.name}: group {group} not found under {self._settings.group_ou}")
                return Outcome.ADD_FAILED

            self.logger.info(f"Adding {machine.name} ({machine.sid}) to {group}")
            self._ldap.add_group_member(group_dn, machine.sid)
            members = {member.casefold() for member in self._ldap.get_group_members(group_dn)}

        except LDAPException as error:
            self.logger.error(f"Error adding {machine.name} to {group}: {error}")
            return Outcome.ADD_FAILED

        if machine.name.casefold() in members:
            log_success(self.logger, f"{machine.name} added to {group}")
            return Outcome.VERIFIED

        self.logger.error(f"{machine.name} is still not a member of {group} after the add")
        return Outcome.ADD_FAILED
