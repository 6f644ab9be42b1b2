"""check_riverbed: SNMP health probe for Riverbed SteelHead appliances."""
