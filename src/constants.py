
LOG_DIR = "C:/ProgramData/LdapPyShard/logs"
LOG_FILE_PREFIX = "ldap-pyshard"
LDAP_SHARD_VERBOSITY = 2 # 0 = errors, 1 = errors and successes, 2 = info, 3 = debug

LDAP_PORT = 389
LDAP_PAGE_SIZE = 500

HASH_ALGORITHM = "SHA256"
HASH_ALGORITHMS = {
    "MD5": "md5",
    "SHA1": "sha1",
    "SHA256": "sha256",
    "SHA384": "sha384",
    "SHA512": "sha512",
}

ERROR_CONFIGURATION = 600
ERROR_SHARDING = 1000

ERROR_LDAP_CONNECTION = 3000
ERROR_LDAP_SEARCH_GROUPS = 3020
ERROR_LDAP_SEARCH_MEMBERS = 3030
ERROR_LDAP_SEARCH_COMPUTERS = 3040

ERROR_RECONCILIATION = 4000

GROUP_ATTRIBUTES = ["name", "distinguishedName"]
MEMBER_ATTRIBUTES = ["name"]
COMPUTER_ATTRIBUTES = ["name", "objectSid"]

# groupType bit flagging a security group
SECURITY_GROUP_FLAG = 2147483648

MATCHING_RULE_BIT_AND = "1.2.840.113556.1.4.803"
MATCHING_RULE_IN_CHAIN = "1.2.840.113556.1.4.1941"

# ldap result codes returned by AD when the member value is already present
MEMBER_ALREADY_PRESENT = (20, 68)
