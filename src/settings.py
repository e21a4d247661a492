LOGO = r"""
                 _    ___                 _  __
 _ __  _   _ ___| |__|_  )_   _____ _ __(_)/ _|_   _
| '_ \| | | / __| '_ \/ /\ \ / / -_) '_|| |  _| | | |
| .__/ \__,_\__ \_| |_/___|\_/\___|_|  |_|_|  \__, |
|_|                                            |___/
"""
